"""HTTP API for the SNCOP file storage service."""
