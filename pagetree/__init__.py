"""pagetree - materialized-path tree index for pages and folders."""
__version__ = "0.1.0"
