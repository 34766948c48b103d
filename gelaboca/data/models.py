"""Catalog models.

Attribute names are English; the aliases are the metadata field names stored
in the product index and the JSON keys the table UI reads.
"""
from numbers import Real
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Product(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    name: str = Field(alias="nome")
    image: str = Field(default="", alias="imagem")
    category: str = Field(default="", alias="categoria")
    code: str = Field(default="", alias="codigo")
    price: float = Field(default=0.0, alias="valor")
    description: str = Field(default="", alias="descricao")
    ingredients: List[str] = Field(default_factory=list, alias="ingredientes")
    addons: List[str] = Field(default_factory=list, alias="adicionais")
    active: bool = Field(default=True, alias="ativado")
    promotional: bool = Field(default=False, alias="promocional")
    text_embedding: Optional[List[float]] = Field(default=None, alias="textoEmbedding")

    def to_api(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)

    def embedding_text(self) -> str:
        """Text embedded into the index for similarity search."""
        parts = [self.name, self.category, self.description]
        if self.ingredients:
            parts.append("Ingredientes: " + ", ".join(self.ingredients))
        if self.addons:
            parts.append("Adicionais: " + ", ".join(self.addons))
        return ". ".join(p for p in parts if p)

    def index_metadata(self) -> Dict[str, Any]:
        """Metadata bag written alongside the vector."""
        meta = self.to_api()
        meta.pop("id", None)
        meta.pop("textoEmbedding", None)
        return meta


class CartItem(Product):
    quantity: int = Field(default=1, alias="quantidade")

    @classmethod
    def from_product(cls, product: Product, quantity: int = 1) -> "CartItem":
        return cls(**product.model_dump(), quantity=quantity)

    def with_quantity(self, quantity: int) -> "CartItem":
        return self.model_copy(update={"quantity": quantity})

    @property
    def line_total(self) -> float:
        return self.price * self.quantity


def _as_number_list(value: Any) -> Optional[List[float]]:
    if not isinstance(value, list):
        return None
    if not all(isinstance(x, Real) and not isinstance(x, bool) for x in value):
        return None
    return [float(x) for x in value]


def _as_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def product_from_match(match: Dict[str, Any], keep_embedding: bool = True) -> Optional[Product]:
    """Build a Product from a vector-index match; None when it carries no metadata."""
    meta = match.get("metadata")
    if not meta:
        return None
    return Product(
        id=str(match.get("id", "")),
        name=str(meta.get("nome") or ""),
        image=str(meta.get("imagem") or ""),
        category=str(meta.get("categoria") or ""),
        code=str(meta.get("codigo") or ""),
        price=_as_float(meta.get("valor")),
        description=str(meta.get("descricao") or ""),
        ingredients=[str(x) for x in meta.get("ingredientes") or []],
        addons=[str(x) for x in meta.get("adicionais") or []],
        active=meta.get("ativado") is True,
        promotional=meta.get("promocional") is True,
        text_embedding=_as_number_list(meta.get("textoEmbedding")) if keep_embedding else None,
    )
