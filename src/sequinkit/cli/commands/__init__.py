"""SequinKit subcommands."""
