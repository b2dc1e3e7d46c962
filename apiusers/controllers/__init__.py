"""Request controllers for the account API."""
