"""Evidence collectors: parsers over command output and the readers that feed them."""
