"""
Request Schemas for the Print Shop Budgeting API

Each Pydantic model below validates one JSON payload accepted by the API.
Stored documents live in two MongoDB collections:
- "materials": catalog of supplies ("produtos")
- "quotes": customer quotes ("orçamentos") with embedded line items,
  each line item embedding the material usages it consumes

Numeric fields accept numbers or numeric strings and are always coerced to float.
"""

from typing import Annotated, Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, field_validator


def _not_blank(value: Any) -> Any:
    if value is None:
        raise ValueError("field required")
    if isinstance(value, str) and not value.strip():
        raise ValueError("must not be blank")
    return value


def _zero_if_none(value: Any) -> Any:
    return 0 if value is None or value == "" else value


Text = Annotated[str, BeforeValidator(_not_blank)]
Number = Annotated[float, BeforeValidator(_not_blank)]
# Optional numbers on quote subdocuments fall back to 0
Amount = Annotated[float, BeforeValidator(_zero_if_none)]


class Payload(BaseModel):
    # inf and NaN cannot be rendered back as JSON
    model_config = ConfigDict(allow_inf_nan=False)


# Materials

class MaterialIn(Payload):
    quantidade: Number = Field(..., description="Units per package")
    descricao: Text = Field(..., description="Material description")
    precoPacote: Number = Field(..., description="Package price")
    precoAnterior: Amount = Field(0, description="Previous package price")
    loja: Text = Field(..., description="Store where it is bought")
    valorFinalUnitario: Number = Field(..., description="Final price per unit")


class MaterialPatch(Payload):
    """Partial update: only the fields actually sent are applied."""

    quantidade: Optional[Number] = None
    descricao: Optional[Text] = None
    precoPacote: Optional[Number] = None
    precoAnterior: Optional[Number] = None
    loja: Optional[Text] = None
    valorFinalUnitario: Optional[Number] = None

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True, exclude_none=True)


# Quotes

class MaterialSnapshot(Payload):
    """Display copy of a material taken when the quote was written. Never refreshed."""

    id: Optional[Any] = Field(None, validation_alias=AliasChoices("id", "_id"))
    descricao: Optional[str] = None
    valorFinalUnitario: Optional[Amount] = None


class MaterialUsageIn(Payload):
    materialId: Optional[Any] = None
    quantidade: Amount = 0
    folhasImpressas: Amount = 0
    custoMaterial: Amount = 0
    custoFolhas: Amount = 0
    custoTotal: Amount = 0
    material: Optional[MaterialSnapshot] = None

    def material_ref(self) -> Any:
        if self.materialId not in (None, ""):
            return self.materialId
        if self.material is not None:
            return self.material.id
        return None


class LineItemIn(Payload):
    nome: str = ""
    quantidade: Amount = 0
    percentualLucro: Amount = 0
    custoUnitario: Amount = 0
    custoTotal: Amount = 0
    materiais: List[MaterialUsageIn] = Field(default_factory=list)

    @field_validator("nome", mode="before")
    @classmethod
    def _as_text(cls, value):
        return "" if value is None else str(value)

    @field_validator("materiais", mode="before")
    @classmethod
    def _no_null_list(cls, value):
        return [] if value is None else value


class QuoteIn(Payload):
    cliente: Text = Field(..., description="Customer name")
    descricao: Optional[str] = Field("", description="Free text description")
    data: Text = Field(..., description="Quote date, kept as sent")
    itens: List[LineItemIn] = Field(..., description="Line items, at least one")

    @field_validator("descricao", mode="before")
    @classmethod
    def _empty_description(cls, value):
        return "" if value is None else value
