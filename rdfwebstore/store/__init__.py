from .web_store import WebStore, if_match_precondition

__all__ = ['WebStore', 'if_match_precondition']
