from sqlalchemy.orm import Session

from contentops.core.errors import NotFoundError
from contentops.models.article import Article
from contentops.services.backends.base import ArticleContent


def create_article(db: Session, organization_id: str, title: str, content: str, category: str | None = None) -> Article:
    a = Article(organization_id=organization_id, title=title, content=content, category=category)
    db.add(a)
    db.commit()
    db.refresh(a)
    return a


def get_article_or_404(db: Session, article_id: int, organization_id: str | None = None) -> Article:
    q = db.query(Article).filter(Article.id == article_id)
    if organization_id is not None:
        q = q.filter(Article.organization_id == organization_id)
    a = q.first()
    if not a:
        raise NotFoundError(f"Article not found: {article_id}")
    return a


def article_content(article: Article) -> ArticleContent:
    return ArticleContent(title=article.title, content=article.content or "", category=article.category)


def article_to_dict(a: Article) -> dict:
    return {
        "id": a.id,
        "organization_id": a.organization_id,
        "title": a.title,
        "category": a.category,
        "created_at": a.created_at.isoformat() if a.created_at else None,
    }
