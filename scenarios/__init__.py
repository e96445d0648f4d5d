# scenarios/__init__.py

# Runnable end-to-end scenarios. Run with: python -m scenarios.<name>
