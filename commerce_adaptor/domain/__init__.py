"""Domain layer: normalized commerce models shared by all adaptors."""
