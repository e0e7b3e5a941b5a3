"""kubedeck: aggregated, metrics-enriched views over a Kubernetes cluster."""

__version__ = "0.3.0"
