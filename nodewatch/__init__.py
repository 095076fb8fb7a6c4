"""nodewatch: observe Kubernetes node lifecycle through a list/watch mirror."""

__version__ = "0.1.0"
