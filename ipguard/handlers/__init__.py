# ipguard/handlers/__init__.py
