"""Infrastructure layer for the Commerce Adaptor."""
