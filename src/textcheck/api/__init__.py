"""HTTP routers and boundary error handling for the two services."""
