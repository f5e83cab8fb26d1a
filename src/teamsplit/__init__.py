"""Training-session roster tracking and team balancing for an amateur football club."""
