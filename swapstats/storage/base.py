from sqlalchemy.orm import declarative_base

Base = declarative_base()


class DocumentMixin:
    """Rows are stored documents: column name -> raw stored value."""

    def to_document(self) -> dict:
        return {c.name: getattr(self, c.name) for c in self.__table__.columns}
