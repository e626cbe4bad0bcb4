# ipguard/services/__init__.py
