"""Session state, wallet components and the transfer pipeline."""
