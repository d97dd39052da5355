"""Resolver package for the GraphQL schema.

Query, field and mutation resolvers referenced by the GraphQL types, queries
and mutations. Relationship fields route through the resolution engine so
sibling lookups are batched.
"""

# Intentionally empty; functions are defined in sibling modules.
