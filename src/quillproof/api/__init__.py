from quillproof.api.app import DocumentRegistry, create_app

__all__ = ["DocumentRegistry", "create_app"]
