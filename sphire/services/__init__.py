"""Domain services shared by the endpoints."""
