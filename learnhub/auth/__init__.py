"""Caller identity: bearer token decoding and service API keys."""
