"""Console todo client with live sync over Supabase."""

__version__ = "0.1.0"
