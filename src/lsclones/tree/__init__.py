"""Directory tree, its builder and the clone classifier."""
