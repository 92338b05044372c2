from typing import Optional

from pydantic import BaseModel, Field

from .portfolio import WalletKind


class AddWalletRequest(BaseModel):
    address: str = Field(description="Signed-in wallet address")
    kind: WalletKind = Field(description="Wallet family (evm or solana)")
    name: Optional[str] = Field(default=None, description="Display name, defaults to the shortened address")
