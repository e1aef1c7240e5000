"""tlsdetect — flags TLS interception by matching a keyword against certificate chains."""

__version__ = "1.0.0"
