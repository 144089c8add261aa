"""Product description generation backed by a user-scoped secret store."""

VERSION = "0.1.0"
