"""Administrative user management API."""
