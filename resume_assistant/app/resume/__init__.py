"""Field-path addressing and the modification applier for resume documents."""
