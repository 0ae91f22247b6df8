"""RDF data model and format helpers."""
