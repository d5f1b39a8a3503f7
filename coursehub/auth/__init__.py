"""Authentication: accounts, credentials and bearer tokens."""
