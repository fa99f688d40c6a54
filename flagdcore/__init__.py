"""Feature flag evaluation: flag definitions, JSON Logic targeting, OFREP payloads, logging and TLS key pair reloading."""

__version__ = "0.1.0"