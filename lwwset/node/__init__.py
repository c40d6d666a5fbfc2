"""HTTP replica node serving one LWW-Set."""
