"""Application layer: configuration, access policy, controller and HTTP API."""
