from core.services.popdv.form_builder import PopdvFormBuilder

__all__ = ["PopdvFormBuilder"]
