"""Core engine — update function, store, effect dispatcher, log processor
and event loop."""
