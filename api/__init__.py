"""HTTP front end for the personal finance manager."""
