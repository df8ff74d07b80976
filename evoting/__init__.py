"""Online voting API: accounts, candidates, votes and reviews."""

__version__ = "0.1.0"
