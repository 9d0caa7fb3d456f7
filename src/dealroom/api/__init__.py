"""HTTP service exposing the deal catalog and negotiation entry points."""
