from sqlalchemy import Column, Integer, String

from inventory_api.db import Base


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(128), nullable=False)

    def __repr__(self):
        return f"<Category id={self.id} name={self.name}>"
