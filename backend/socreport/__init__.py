"""SOC report widget pipeline."""
