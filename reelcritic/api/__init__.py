"""HTTP layer: routes, schemas and middleware for the reelcritic service."""
