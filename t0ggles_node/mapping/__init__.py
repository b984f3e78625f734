"""Parameter → payload mapping for the t0ggles API."""
