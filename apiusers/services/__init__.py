"""External collaborators of the authentication core."""
