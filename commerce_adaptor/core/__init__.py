"""Core configuration, exceptions and logging for the Commerce Adaptor."""
