"""Navigation capability and post-login return targets."""
