"""School Portal: role-based school management on a hosted Supabase backend."""

__version__ = "0.1.0"
