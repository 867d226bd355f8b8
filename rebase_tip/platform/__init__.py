"""Process execution and host capability probing."""
