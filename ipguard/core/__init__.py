# ipguard/core/__init__.py
