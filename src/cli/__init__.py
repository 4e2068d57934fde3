"""beesync command-line interface."""
