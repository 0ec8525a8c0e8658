"""Service layer: conversation driving, streaming transport and paper lookup."""
