"""click subcommands for the ccwrap CLI."""
