# ipguard/utils/__init__.py
