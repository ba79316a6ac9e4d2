"""Application composition layer.

Controllers and presenters in this package wire view models, adapters and
use cases into runnable flows without placing business logic in views.
"""
