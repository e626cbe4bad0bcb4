# ipguard/config/__init__.py
