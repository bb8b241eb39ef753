"""Configuration, logging, security primitives, page gate, mail."""
