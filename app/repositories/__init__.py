"""
Repository package for data access layers.

`app.repositories.videos` holds the metadata store contract and its SQL and
in-memory implementations; `app.core.container` picks one from
`METADATA_BACKEND`.
"""
