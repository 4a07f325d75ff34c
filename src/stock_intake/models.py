"""
Pydantic models for invoice intake: scanned line items, catalog products, review rows.
Field aliases follow the wire names used by the OCR scan and the stock API.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CategoryTag(str, Enum):
    """Inventory category. Values are the stock API's enum names."""
    OIL_LUBRICANT = "OLEO_LUBRIFICANTE"
    ADDITIVE = "ADITIVO"
    GREASE = "GRAXA"
    OIL_FILTER = "FILTRO_OLEO"
    AIR_FILTER = "FILTRO_AR"
    CABIN_AIR_FILTER = "FILTRO_AR_CONDICIONADO"
    FUEL_FILTER = "FILTRO_COMBUSTIVEL"
    ACCESSORY = "ACESSORIO"
    OTHER = "OUTRO"

    @property
    def label(self) -> str:
        return CATEGORY_LABELS[self]


CATEGORY_LABELS = {
    CategoryTag.OIL_LUBRICANT: "Óleo Lubrificante",
    CategoryTag.ADDITIVE: "Aditivo",
    CategoryTag.GREASE: "Graxa",
    CategoryTag.OIL_FILTER: "Filtro de Óleo",
    CategoryTag.AIR_FILTER: "Filtro de Ar",
    CategoryTag.CABIN_AIR_FILTER: "Filtro de Ar Condicionado",
    CategoryTag.FUEL_FILTER: "Filtro de Combustível",
    CategoryTag.ACCESSORY: "Acessório",
    CategoryTag.OTHER: "Outro",
}


class UnitOfMeasure(str, Enum):
    LITER = "LITRO"
    KILOGRAM = "KG"
    UNIT = "UNIDADE"
    METER = "METRO"  # only ever set by existing stock, never detected


def _blank_to_none(v):
    if v is None:
        return None
    s = str(v).strip()
    return s or None


class LineItem(BaseModel):
    """One row of a scanned invoice, as handed over by the OCR service."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    description: str = Field(default="", alias="descricao")
    supplier_code: Optional[str] = Field(default=None, alias="codigo")
    ocr_unit_hint: Optional[str] = Field(default=None, alias="unidade")
    quantity: float = Field(default=1.0, alias="quantidade")
    unit_price: float = Field(default=0.0, alias="valorUnitario")

    @field_validator("description", mode="before")
    @classmethod
    def _description(cls, v):
        return "" if v is None else str(v).strip()

    @field_validator("supplier_code", "ocr_unit_hint", mode="before")
    @classmethod
    def _optional_text(cls, v):
        return _blank_to_none(v)

    @field_validator("quantity", mode="before")
    @classmethod
    def _quantity(cls, v):
        # OCR sends null or 0 when the column is unreadable
        return v or 1.0

    @field_validator("unit_price", mode="before")
    @classmethod
    def _unit_price(cls, v):
        return v or 0.0


class ScannedInvoice(BaseModel):
    """Structured result of an invoice scan (nota fiscal)."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    supplier_name: Optional[str] = Field(default=None, alias="fornecedor")
    supplier_cnpj: Optional[str] = Field(default=None, alias="cnpj")
    invoice_number: Optional[str] = Field(default=None, alias="numeroNF")
    items: list[LineItem] = Field(default_factory=list, alias="itens")
    error: Optional[str] = Field(default=None, alias="erro")

    @field_validator("supplier_name", "supplier_cnpj", "invoice_number", mode="before")
    @classmethod
    def _optional_text(cls, v):
        return _blank_to_none(v)

    @field_validator("items", mode="before")
    @classmethod
    def _items(cls, v):
        return v or []


class CatalogProduct(BaseModel):
    """Existing stock record. Extra API fields are kept so updates can echo them back."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: int
    name: str = Field(alias="nome")
    unit_price: float = Field(default=0.0, alias="precoVenda")
    quantity_on_hand: float = Field(default=0.0, alias="quantidade")
    unit_of_measure: UnitOfMeasure = Field(default=UnitOfMeasure.UNIT, alias="unidade")
    code: Optional[str] = Field(default=None, alias="codigo")
    brand: Optional[str] = Field(default=None, alias="marca")
    category: Optional[CategoryTag] = Field(default=None, alias="categoria")
    purchase_price: Optional[float] = Field(default=None, alias="precoCompra")
    current_purchase_price: Optional[float] = Field(default=None, alias="precoCompraAtual")
    volume_per_unit: Optional[float] = Field(default=None, alias="volumeUnidade")
    min_stock: Optional[float] = Field(default=None, alias="estoqueMinimo")

    @field_validator("unit_of_measure", "category", mode="before")
    @classmethod
    def _upper_enum(cls, v):
        # the API is lenient about enum casing on write
        return v.upper() if isinstance(v, str) else v

    @field_validator("unit_price", "quantity_on_hand", mode="before")
    @classmethod
    def _zero_if_null(cls, v):
        return 0.0 if v is None else v


class MatchResult(BaseModel):
    """Outcome of a best-match scan. product is None when nothing reached the threshold."""
    product: Optional[CatalogProduct] = None
    score: float = Field(default=0.0, ge=0.0, le=1.0)


class ReviewItem(BaseModel):
    """Pre-filled review row for one scanned line item."""
    index: int
    code: str
    description: str
    category: CategoryTag
    unit: UnitOfMeasure
    volume_per_unit: Optional[float] = Field(
        default=None,
        description="Liters or kilograms per package; None when the user must supply it",
    )
    missing_volume: bool = False
    quantity: float = 1.0
    min_stock: float = 5
    purchase_price: float = 0.0
    sale_price: float = 0.0
    existing_product: Optional[CatalogProduct] = None
    match_score: float = 0.0
    update_existing: bool = False
    selected: bool = True


class InvoiceReview(BaseModel):
    """Review rows for one scanned invoice file."""
    source_file: str
    supplier_name: Optional[str] = None
    supplier_cnpj: Optional[str] = None
    invoice_number: Optional[str] = None
    items: list[ReviewItem] = Field(default_factory=list)
    raw_metadata: dict = Field(default_factory=dict)


class CommitSummary(BaseModel):
    created: int = 0
    updated: int = 0
    failed: int = 0

    @property
    def message(self) -> str:
        parts = []
        if self.created:
            parts.append(f"{self.created} produto(s) cadastrado(s)")
        if self.updated:
            parts.append(f"{self.updated} estoque(s) atualizado(s)")
        msg = " e ".join(parts) if parts else "Nenhum item salvo"
        if self.failed:
            msg += f" ({self.failed} falha(s))"
        return msg


class CategoryCorrection(BaseModel):
    """Suggested recategorization of a product currently filed under OTHER."""
    product_id: int
    code: Optional[str] = None
    name: str
    current: CategoryTag
    suggested: CategoryTag
    # Full record; the stock API PUT replaces the product, so write-back sends all of it
    product: CatalogProduct
