"""Command line tool for staging and building kustomizations."""
