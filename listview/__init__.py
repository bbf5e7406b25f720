"""Table view engine and list-screen service for the dealer dashboard."""

__version__ = "0.3.0"
