from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from contentops.core.errors import InvalidStateError
from contentops.db.session import get_db
from contentops.models.tag import Tag
from contentops.services.articles import article_to_dict, create_article, get_article_or_404

router = APIRouter(prefix="/orgs/{organization_id}", tags=["articles"])


class ArticleCreateRequest(BaseModel):
    title: str = Field(min_length=1)
    content: str = Field(min_length=1)
    category: str | None = None


class TagCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    description: str | None = None
    category: str | None = None


@router.post("/articles")
def create_article_route(organization_id: str, req: ArticleCreateRequest, db: Session = Depends(get_db)):
    a = create_article(db, organization_id, req.title, req.content, req.category)
    return {"ok": True, "article": article_to_dict(a)}


@router.get("/articles/{article_id}")
def get_article_route(organization_id: str, article_id: int, db: Session = Depends(get_db)):
    a = get_article_or_404(db, article_id, organization_id)
    return {"ok": True, "article": article_to_dict(a)}


@router.post("/tags")
def create_tag_route(organization_id: str, req: TagCreateRequest, db: Session = Depends(get_db)):
    tag = Tag(organization_id=organization_id, name=req.name.strip(), description=req.description, category=req.category)
    db.add(tag)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise InvalidStateError(f"Tag already exists: {req.name}")
    db.refresh(tag)
    return {
        "ok": True,
        "tag": {"id": tag.id, "name": tag.name, "description": tag.description, "category": tag.category},
    }
