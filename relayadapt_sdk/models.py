"""
Data models for the RelayAdapt SDK.
"""
from enum import IntEnum
from typing import Dict, Any, Optional, List, Tuple

from pydantic import BaseModel, Field, field_validator

from .utils import ZERO_ADDRESS, to_address, to_dynamic_bytes, to_fixed_bytes

MAX_NONCE = 2 ** 248 - 1
MAX_NOTE_VALUE = 2 ** 120 - 1
ZERO_BYTES32 = b"\x00" * 32


class TokenType(IntEnum):
    """Token standard of a note"""
    ERC20 = 0
    ERC721 = 1
    ERC1155 = 2


class UnshieldType(IntEnum):
    """Unshield mode of a shielded transaction"""
    NONE = 0
    NORMAL = 1
    REDIRECT = 2


class Call(BaseModel):
    """A single follow-up call executed by the multicall"""
    to: str
    data: bytes = b""
    value: int = Field(0, ge=0)

    class Config:
        frozen = True

    @field_validator("to", mode="before")
    @classmethod
    def check_to(cls, value: Any) -> str:
        return to_address(value)

    @field_validator("data", mode="before")
    @classmethod
    def check_data(cls, value: Any) -> bytes:
        return to_dynamic_bytes(value)

    def to_abi(self) -> Tuple[str, bytes, int]:
        return (self.to, self.data, self.value)

    @classmethod
    def from_abi(cls, raw: Tuple[Any, ...]) -> "Call":
        to, data, value = raw
        return cls(to=to, data=data, value=value)


class ActionData(BaseModel):
    """Follow-up actions bound to a transaction batch by the adapt params"""
    nonce: int = Field(..., ge=0, le=MAX_NONCE)
    require_success: bool = Field(..., alias="requireSuccess")
    min_gas_limit: int = Field(0, ge=0, alias="minGasLimit")
    calls: List[Call] = Field(default_factory=list)

    class Config:
        frozen = True
        populate_by_name = True

    @field_validator("nonce", mode="before")
    @classmethod
    def nonce_from_bytes(cls, value: Any) -> Any:
        if isinstance(value, (bytes, bytearray)):
            if len(value) > 31:
                raise ValueError("Nonce must fit in 31 bytes")
            return int.from_bytes(value, "big")
        return value

    def to_abi(self) -> Tuple[bytes, bool, int, List[Tuple[str, bytes, int]]]:
        return (
            self.nonce.to_bytes(31, "big"),
            self.require_success,
            self.min_gas_limit,
            [call.to_abi() for call in self.calls],
        )

    @classmethod
    def from_abi(cls, raw: Tuple[Any, ...]) -> "ActionData":
        nonce, require_success, min_gas_limit, calls = raw
        return cls(
            nonce=nonce,
            require_success=require_success,
            min_gas_limit=min_gas_limit,
            calls=[Call.from_abi(call) for call in calls],
        )


class TokenData(BaseModel):
    """Token descriptor of a note"""
    token_type: TokenType = Field(TokenType.ERC20, alias="tokenType")
    token_address: str = Field(..., alias="tokenAddress")
    token_sub_id: int = Field(0, ge=0, lt=2 ** 256, alias="tokenSubID")

    class Config:
        frozen = True
        populate_by_name = True

    @field_validator("token_address", mode="before")
    @classmethod
    def check_address(cls, value: Any) -> str:
        return to_address(value)

    @property
    def is_native(self) -> bool:
        """Whether this descriptor refers to the chain's base asset"""
        return self.token_type == TokenType.ERC20 and self.token_address == ZERO_ADDRESS

    def to_abi(self) -> Tuple[int, str, int]:
        return (int(self.token_type), self.token_address, self.token_sub_id)

    @classmethod
    def from_abi(cls, raw: Tuple[Any, ...]) -> "TokenData":
        token_type, token_address, token_sub_id = raw
        return cls(token_type=token_type, token_address=token_address, token_sub_id=token_sub_id)


class CommitmentPreimage(BaseModel):
    """Preimage of a note commitment"""
    npk: bytes
    token: TokenData
    value: int = Field(..., ge=0, le=MAX_NOTE_VALUE)

    class Config:
        frozen = True

    @field_validator("npk", mode="before")
    @classmethod
    def check_npk(cls, value: Any) -> bytes:
        return to_fixed_bytes(value)

    def to_abi(self) -> Tuple[bytes, Tuple[int, str, int], int]:
        return (self.npk, self.token.to_abi(), self.value)

    @classmethod
    def from_abi(cls, raw: Tuple[Any, ...]) -> "CommitmentPreimage":
        npk, token, value = raw
        return cls(npk=npk, token=TokenData.from_abi(token), value=value)


class ShieldCiphertext(BaseModel):
    """Encrypted note data accompanying a shield request"""
    encrypted_bundle: Tuple[bytes, bytes, bytes] = Field(
        (ZERO_BYTES32, ZERO_BYTES32, ZERO_BYTES32), alias="encryptedBundle"
    )
    shield_key: bytes = Field(ZERO_BYTES32, alias="shieldKey")

    class Config:
        frozen = True
        populate_by_name = True

    @field_validator("encrypted_bundle", mode="before")
    @classmethod
    def check_bundle(cls, value: Any) -> Tuple[bytes, ...]:
        items = list(value)
        if len(items) != 3:
            raise ValueError("Encrypted bundle must hold exactly 3 words")
        return tuple(to_fixed_bytes(item) for item in items)

    @field_validator("shield_key", mode="before")
    @classmethod
    def check_shield_key(cls, value: Any) -> bytes:
        return to_fixed_bytes(value)

    def to_abi(self) -> Tuple[List[bytes], bytes]:
        return (list(self.encrypted_bundle), self.shield_key)

    @classmethod
    def from_abi(cls, raw: Tuple[Any, ...]) -> "ShieldCiphertext":
        bundle, shield_key = raw
        return cls(encrypted_bundle=tuple(bundle), shield_key=shield_key)


class TokenTransfer(BaseModel):
    """Plain token send performed by the adapt contract"""
    token: TokenData
    to: str
    value: int = Field(0, ge=0, lt=2 ** 256)

    class Config:
        frozen = True

    @field_validator("to", mode="before")
    @classmethod
    def check_to(cls, value: Any) -> str:
        return to_address(value)

    def to_abi(self) -> Tuple[Tuple[int, str, int], str, int]:
        return (self.token.to_abi(), self.to, self.value)

    @classmethod
    def from_abi(cls, raw: Tuple[Any, ...]) -> "TokenTransfer":
        token, to, value = raw
        return cls(token=TokenData.from_abi(token), to=to, value=value)


class SnarkProof(BaseModel):
    """Groth16 proof points; opaque to the adapt layer"""
    a: Tuple[int, int] = (0, 0)
    b: Tuple[Tuple[int, int], Tuple[int, int]] = ((0, 0), (0, 0))
    c: Tuple[int, int] = (0, 0)

    class Config:
        frozen = True

    def to_abi(self) -> Tuple[Any, ...]:
        return (self.a, ([*self.b[0]], [*self.b[1]]), self.c)

    @classmethod
    def from_abi(cls, raw: Tuple[Any, ...]) -> "SnarkProof":
        a, b, c = raw
        return cls(a=tuple(a), b=(tuple(b[0]), tuple(b[1])), c=tuple(c))


class CommitmentCiphertext(BaseModel):
    """Encrypted output note data; opaque to the adapt layer"""
    ciphertext: Tuple[bytes, bytes, bytes, bytes] = (ZERO_BYTES32,) * 4
    blinded_sender_viewing_key: bytes = Field(ZERO_BYTES32, alias="blindedSenderViewingKey")
    blinded_receiver_viewing_key: bytes = Field(ZERO_BYTES32, alias="blindedReceiverViewingKey")
    annotation_data: bytes = Field(b"", alias="annotationData")
    memo: bytes = b""

    class Config:
        frozen = True
        populate_by_name = True

    @field_validator("ciphertext", mode="before")
    @classmethod
    def check_ciphertext(cls, value: Any) -> Tuple[bytes, ...]:
        items = list(value)
        if len(items) != 4:
            raise ValueError("Ciphertext must hold exactly 4 words")
        return tuple(to_fixed_bytes(item) for item in items)

    def to_abi(self) -> Tuple[Any, ...]:
        return (
            list(self.ciphertext),
            self.blinded_sender_viewing_key,
            self.blinded_receiver_viewing_key,
            self.annotation_data,
            self.memo,
        )

    @classmethod
    def from_abi(cls, raw: Tuple[Any, ...]) -> "CommitmentCiphertext":
        ciphertext, sender_key, receiver_key, annotation_data, memo = raw
        return cls(
            ciphertext=tuple(ciphertext),
            blinded_sender_viewing_key=sender_key,
            blinded_receiver_viewing_key=receiver_key,
            annotation_data=annotation_data,
            memo=memo,
        )


class BoundParams(BaseModel):
    """Public parameters bound into a transaction's proof"""
    tree_number: int = Field(0, ge=0, lt=2 ** 16, alias="treeNumber")
    min_gas_price: int = Field(0, ge=0, lt=2 ** 72, alias="minGasPrice")
    unshield: UnshieldType = UnshieldType.NONE
    chain_id: int = Field(0, ge=0, lt=2 ** 64, alias="chainID")
    adapt_contract: str = Field(ZERO_ADDRESS, alias="adaptContract")
    adapt_params: bytes = Field(ZERO_BYTES32, alias="adaptParams")
    commitment_ciphertext: List[CommitmentCiphertext] = Field(
        default_factory=list, alias="commitmentCiphertext"
    )

    class Config:
        frozen = True
        populate_by_name = True

    @field_validator("adapt_contract", mode="before")
    @classmethod
    def check_adapt_contract(cls, value: Any) -> str:
        return to_address(value)

    @field_validator("adapt_params", mode="before")
    @classmethod
    def check_adapt_params(cls, value: Any) -> bytes:
        return to_fixed_bytes(value)

    def to_abi(self) -> Tuple[Any, ...]:
        return (
            self.tree_number,
            self.min_gas_price,
            int(self.unshield),
            self.chain_id,
            self.adapt_contract,
            self.adapt_params,
            [ciphertext.to_abi() for ciphertext in self.commitment_ciphertext],
        )

    @classmethod
    def from_abi(cls, raw: Tuple[Any, ...]) -> "BoundParams":
        tree_number, min_gas_price, unshield, chain_id, adapt_contract, adapt_params, ciphertexts = raw
        return cls(
            tree_number=tree_number,
            min_gas_price=min_gas_price,
            unshield=unshield,
            chain_id=chain_id,
            adapt_contract=adapt_contract,
            adapt_params=adapt_params,
            commitment_ciphertext=[CommitmentCiphertext.from_abi(item) for item in ciphertexts],
        )


class Transaction(BaseModel):
    """
    Shielded transaction as submitted to the ledger.

    The adapt layer only reads ``nullifiers[0]`` and
    ``bound_params.adapt_params``; everything else is carried untouched.
    """
    proof: SnarkProof = Field(default_factory=SnarkProof)
    merkle_root: bytes = Field(ZERO_BYTES32, alias="merkleRoot")
    nullifiers: List[bytes] = Field(..., min_length=1)
    commitments: List[bytes] = Field(default_factory=list)
    bound_params: BoundParams = Field(default_factory=BoundParams, alias="boundParams")
    unshield_preimage: Optional[CommitmentPreimage] = Field(None, alias="unshieldPreimage")

    class Config:
        frozen = True
        populate_by_name = True

    @field_validator("merkle_root", mode="before")
    @classmethod
    def check_merkle_root(cls, value: Any) -> bytes:
        return to_fixed_bytes(value)

    @field_validator("nullifiers", "commitments", mode="before")
    @classmethod
    def check_words(cls, value: Any) -> List[bytes]:
        return [to_fixed_bytes(item) for item in value]

    @property
    def adapt_params(self) -> bytes:
        return self.bound_params.adapt_params

    def with_adapt_params(self, adapt_params: bytes) -> "Transaction":
        """Return a copy of this transaction bound to ``adapt_params``"""
        bound = self.bound_params.model_copy(update={"adapt_params": to_fixed_bytes(adapt_params)})
        return self.model_copy(update={"bound_params": bound})

    def to_abi(self) -> Tuple[Any, ...]:
        unshield_preimage = self.unshield_preimage or CommitmentPreimage(
            npk=ZERO_BYTES32,
            token=TokenData(token_address=ZERO_ADDRESS),
            value=0,
        )
        return (
            self.proof.to_abi(),
            self.merkle_root,
            list(self.nullifiers),
            list(self.commitments),
            self.bound_params.to_abi(),
            unshield_preimage.to_abi(),
        )

    @classmethod
    def from_abi(cls, raw: Tuple[Any, ...]) -> "Transaction":
        proof, merkle_root, nullifiers, commitments, bound_params, unshield_preimage = raw
        preimage = CommitmentPreimage.from_abi(unshield_preimage)
        # An all-zero preimage is how "no unshield preimage" is encoded
        if preimage.value == 0 and preimage.npk == ZERO_BYTES32 and preimage.token.token_address == ZERO_ADDRESS:
            preimage = None
        return cls(
            proof=SnarkProof.from_abi(proof),
            merkle_root=merkle_root,
            nullifiers=list(nullifiers),
            commitments=list(commitments),
            bound_params=BoundParams.from_abi(bound_params),
            unshield_preimage=preimage,
        )


class CallResult(BaseModel):
    """Outcome of a single multicall step"""
    success: bool
    returned: bytes = b""


class TxReceipt(BaseModel):
    """Transaction receipt from the blockchain"""
    tx_hash: str = Field(..., alias="transactionHash")
    block_number: int = Field(..., alias="blockNumber")
    block_hash: str = Field(..., alias="blockHash")
    status: int
    gas_used: int = Field(..., alias="gasUsed")
    from_address: str = Field(..., alias="from")
    to_address: Optional[str] = Field(None, alias="to")
    logs: List[Dict[str, Any]]

    class Config:
        populate_by_name = True
