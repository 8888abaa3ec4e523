"""polypkg - one engine over every package manager on the host."""

__version__ = "0.4.0"
