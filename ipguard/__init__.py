# ipguard/__init__.py
