"""Listings, clone-location mapping, membership diff and structured reports."""
