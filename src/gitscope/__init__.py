"""git-scope: a terminal dashboard for every git repository you have."""

__version__ = "0.2.0"
