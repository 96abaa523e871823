"""Address helpers and the account session facade."""
