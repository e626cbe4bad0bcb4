# ipguard/handlers/admin/__init__.py
