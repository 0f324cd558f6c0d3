# clientvault/core/__init__.py
