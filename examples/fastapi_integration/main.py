"""
FastAPI Integration Example

Demonstrates returning cursor tokens from a FastAPI endpoint and mapping
Seekset errors to HTTP responses.
"""

from collections.abc import Iterator

from fastapi import Depends, FastAPI, HTTPException, status
from pydantic import BaseModel
from sqlalchemy import Integer, String, create_engine, select
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column

from seekset import CursorError, InvalidLimit, Page, configure


class Base(DeclarativeBase):
    pass


class Article(Base):
    __tablename__ = "articles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(200))
    author: Mapped[str | None] = mapped_column(String(100), nullable=True)


class ArticleOut(BaseModel):
    """Response model for one article"""

    id: int
    title: str
    author: str | None


class ArticlePage(BaseModel):
    """Response model for a page of articles"""

    items: list[ArticleOut]
    previous: str | None = None
    next: str | None = None


engine = create_engine("sqlite:///articles.db")
Base.metadata.create_all(engine)
configure(secret="change-me", page_max_limit=100)

app = FastAPI(title="Seekset + FastAPI Example")


def get_session() -> Iterator[Session]:
    with Session(engine) as session:
        yield session


@app.get("/articles", response_model=ArticlePage)
def list_articles(
    cursor: str | None = None,
    limit: int | None = None,
    author: str | None = None,
    session: Session = Depends(get_session),
) -> ArticlePage:
    """List articles by author (missing authors last), newest first"""
    source = select(Article)
    if author:
        source = source.where(Article.author == author)

    try:
        page = Page(
            session,
            source,
            order={"author": {"direction": "asc", "nulls": "last"}, "id": "desc"},
            limit=limit,
        ).at(cursor)
        links = page.links()
        items = [ArticleOut.model_validate(row[0], from_attributes=True) for row in page.records]
    except (CursorError, InvalidLimit) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from e

    return ArticlePage(items=items, previous=links.get("previous"), next=links.get("next"))


# Run with: uvicorn main:app --reload
# Visit: http://localhost:8000/docs
