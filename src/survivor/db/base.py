import re

from sqlalchemy.orm import DeclarativeBase, declared_attr


def _snake_case(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


class Base(DeclarativeBase):
    """Base déclarative: le nom de table est dérivé du nom de classe (PickRule -> pick_rule)."""

    @declared_attr.directive
    def __tablename__(cls) -> str:
        return _snake_case(cls.__name__)
