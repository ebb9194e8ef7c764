"""HTTP middleware: error handlers, observability."""
