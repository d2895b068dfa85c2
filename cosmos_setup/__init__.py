"""Azure Cosmos DB database provisioning.

This package ensures a Cosmos DB (NoSQL API) database exists with the
configured throughput, retrying transient failures with exponential
backoff and jitter.
"""

__version__ = "1.0.0"
