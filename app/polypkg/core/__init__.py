"""Engine core: errors, configuration, availability probing and aggregation."""
