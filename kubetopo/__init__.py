"""kubetopo: infers applications from Kubernetes resources and lays them out as diagrams."""

__version__ = "0.1.0"
