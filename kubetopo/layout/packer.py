"""Canvas packer: places applications into non-overlapping rows."""

from __future__ import annotations

from dataclasses import dataclass

from kubetopo.models.config import LayoutConfig
from kubetopo.models.layout import Application


@dataclass
class Canvas:
    """Packed applications and the extent of the whole scene."""

    applications: list[Application]
    width: float = 0.0
    height: float = 0.0


def pack_applications(applications: list[Application], config: LayoutConfig | None = None) -> Canvas:
    """Greedy row packing, tallest first.

    An application starts a new row when it would push the current row past
    ``max_row_width``; an application wider than the bound gets a row of its
    own. Within a row every application is centred vertically against the
    tallest member. Applications are translated in place.
    """
    cfg = config or LayoutConfig()
    ordered = sorted(applications, key=lambda a: (-a.height, a.namespace or "", a.name, a.id))

    rows: list[list[Application]] = []
    row: list[Application] = []
    row_width = 0.0
    for app in ordered:
        needed = app.width if not row else row_width + cfg.app_gap + app.width
        if row and needed > cfg.max_row_width:
            rows.append(row)
            row, needed = [], app.width
        row.append(app)
        row_width = needed
    if row:
        rows.append(row)

    canvas = Canvas(applications=ordered)
    y = 0.0
    for members in rows:
        row_height = max(app.height for app in members)
        x = 0.0
        for app in members:
            app.translate(x - app.x, y + (row_height - app.height) / 2 - app.y)
            x += app.width + cfg.app_gap
        canvas.width = max(canvas.width, x - cfg.app_gap)
        y += row_height + cfg.app_gap
    canvas.height = max(0.0, y - cfg.app_gap)
    return canvas
