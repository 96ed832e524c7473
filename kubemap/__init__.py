"""kubemap: Kubernetes API group/version resolution per cluster version."""

__version__ = "0.3.0"
