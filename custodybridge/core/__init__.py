"""Authorization core: hashing, replay protection, permissions, execution."""
