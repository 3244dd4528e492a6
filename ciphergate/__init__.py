"""ciphergate - encrypted-volume messaging gateway."""

__version__ = "0.1.0"
