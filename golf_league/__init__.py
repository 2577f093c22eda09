"""Golf league backend: scheduling, handicaps and match play."""
