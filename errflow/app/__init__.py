"""Application composition: settings loading and the ``errflow-demo`` CLI.

Modules here wire the default handler, the HTTP transport and the console
notifier together; no matching logic lives in this package.
"""
