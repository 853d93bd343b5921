"""Value engine services."""
