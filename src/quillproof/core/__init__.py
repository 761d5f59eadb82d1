from quillproof.core.settings import (
    AnchoringSettings,
    CadenceSettings,
    LedgerSettings,
    QuillproofSettings,
    RuntimeSettings,
    get_settings,
)

__all__ = [
    "AnchoringSettings",
    "CadenceSettings",
    "LedgerSettings",
    "QuillproofSettings",
    "RuntimeSettings",
    "get_settings",
]
