from pydantic import BaseModel, ConfigDict
from typing import Optional, Dict, Any, Union
from enum import Enum


# *** VALIDATION ENUMS ***
class ValidationStatus(str, Enum):
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"

class ReconciliationState(str, Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"

class Environment(str, Enum):
    live = "live"
    sandbox = "sandbox"

class Service(str, Enum):
    GOOGLE = "GOOGLE"


# *** RECEIPT SCHEMAS ***
class Receipt(BaseModel):
    data: Union[str, Dict[str, Any]]  # signed purchase JSON, or the decoded object
    signature: str  # base64

class PurchaseInfo(BaseModel):
    transactionId: Optional[Union[int, str]] = None
    orderId: Optional[Union[int, str]] = None
    productId: Optional[Union[int, str]] = None
    purchaseDate: Optional[Union[int, str]] = None
    quantity: int = 1
    expirationDate: Optional[Union[int, str]] = None


# *** CONFIGURATION SCHEMAS ***
class GooglePlayConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    googlePublicKeyPath: Optional[str] = None
    googlePublicKeyStrLive: Optional[str] = None
    googlePublicKeyStrSandbox: Optional[str] = None
    googleAccToken: Optional[str] = None
    googleRefToken: Optional[str] = None
    googleClientID: Optional[str] = None
    googleClientSecret: Optional[str] = None

    @property
    def has_api_credentials(self) -> bool:
        return bool(self.googleAccToken and self.googleRefToken
                    and self.googleClientID and self.googleClientSecret)
