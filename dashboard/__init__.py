"""Dashboard render pipeline: session state, chart slots and surfaces."""
