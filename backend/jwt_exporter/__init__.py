"""Export claims of JWTs stored in Kubernetes secrets as Prometheus metrics."""

__version__ = "0.1.0"
