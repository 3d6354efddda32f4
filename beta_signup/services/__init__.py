"""Service layer: stores, allocation, membership and the signup workflow."""
