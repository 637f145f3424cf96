"""Wire and result models for the ANAF VAT payer web service."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ANAFRequest(BaseModel):
    cui: int
    data: str  # YYYY-MM-DD


class ANAFCompanyData(BaseModel):
    """One ``found`` entry; ANAF returns many more fields than are read here."""

    cui: int
    data: Optional[str] = None
    denumire: Optional[str] = None
    nume: Optional[str] = None
    adresa: Optional[str] = None
    scp_tva: Optional[bool] = Field(default=None, alias="scpTVA")
    status_inactivi: Optional[bool] = Field(default=None, alias="statusInactivi")
    data_inregistrare: Optional[str] = None
    cod_postal: Optional[str] = Field(default=None, alias="codPostal")

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    @property
    def legal_name(self) -> str:
        return self.nume or self.denumire or ""


class ANAFResponse(BaseModel):
    cod: int
    message: str = ""
    found: List[ANAFCompanyData] = Field(default_factory=list)
    notfound: List[int] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


class ValidationResponse(BaseModel):
    valid: bool
    cui: str
    legal_name: Optional[str] = None
    address: Optional[str] = None
    county: Optional[str] = None
    vat_payer: Optional[bool] = None
    active: Optional[bool] = None
    registration_date: Optional[str] = None
    message: Optional[str] = None


class CacheEntryStats(BaseModel):
    cui: str
    age: int  # seconds
    valid: bool


class CacheStats(BaseModel):
    backend: str = "memory"
    size: int
    entries: List[CacheEntryStats] = Field(default_factory=list)
