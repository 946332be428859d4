"""Document processing, storage and search services."""
