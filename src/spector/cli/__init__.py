"""The spector command line: validate, schema-generate and code-generate."""
