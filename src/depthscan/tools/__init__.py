"""Small developer helpers (timing instrumentation)."""
