"""Console front end for the personal finance manager."""
