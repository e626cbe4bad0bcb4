# ipguard/middlewares/__init__.py
