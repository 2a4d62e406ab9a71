from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import pytest

from contentops.db.session import SessionLocal
from contentops.models.article import Article
from contentops.models.enums import OutputKind
from contentops.models.submission import Submission
from contentops.services.outputs import create_output


def test_db_select_1():
    db: Session = SessionLocal()
    try:
        r = db.execute(text("SELECT 1")).scalar_one()
        assert r == 1
    finally:
        db.close()


def test_db_crud_article():
    db: Session = SessionLocal()
    try:
        a = Article(organization_id="org-1", title="Hello", content="World")
        db.add(a)
        db.commit()
        db.refresh(a)

        assert a.id is not None

        a2 = db.query(Article).filter(Article.id == a.id).one()
        assert a2.title == "Hello"
    finally:
        db.close()


def test_one_output_per_kind_per_submission():
    db: Session = SessionLocal()
    try:
        a = Article(organization_id="org-1", title="Hello", content="World")
        db.add(a)
        db.flush()
        sub = Submission(article_id=a.id, language="ENGLISH")
        db.add(sub)
        db.flush()
        create_output(db, submission_id=sub.id, organization_id="org-1", kind=OutputKind.AUDIO)
        with pytest.raises(IntegrityError):
            create_output(db, submission_id=sub.id, organization_id="org-1", kind=OutputKind.AUDIO)
        db.rollback()
    finally:
        db.close()
