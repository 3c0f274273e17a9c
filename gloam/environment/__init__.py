"""Environment: passability grid and field-of-view."""
