"""peeplab command-line interface."""
