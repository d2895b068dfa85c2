"""Cosmos DB database provisioning: ensure-with-retry and its collaborators."""
