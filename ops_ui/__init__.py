"""Console UI, selection workflows and the `ops` command line."""
