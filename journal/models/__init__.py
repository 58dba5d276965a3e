from journal.models.user import User, UserRole
from journal.models.article import Article, ArticleStatus, Category, TranslationSet

__all__ = ["User", "UserRole", "Article", "ArticleStatus", "Category", "TranslationSet"]
