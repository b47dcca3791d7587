"""
Blockfrost API adapter for ledger access.

Reads UTxOs over the Blockfrost REST API and builds transactions with
pycardano's builder on top of ``BlockFrostChainContext``.
"""

import asyncio
from typing import Any, List, Optional, Sequence

import httpx
import structlog

from pycardano import (
    Address,
    Asset,
    AssetName,
    BlockFrostChainContext,
    DatumHash,
    MultiAsset,
    Network,
    PlutusV2Script,
    RawPlutusData,
    ScriptHash,
    TransactionId,
    TransactionInput,
    TransactionOutput,
    UTxO,
    Value,
)

from smart_handles.config import SmartHandlesConfig, get_config
from smart_handles.node.interface import LedgerClient, NodeConnectionError
from smart_handles.tx.builder import PyCardanoTxBuilder
from smart_handles.tx.signer import WalletSigner

logger = structlog.get_logger(__name__)

# Blockfrost page size
PAGE_SIZE = 100


class BlockfrostLedger(LedgerClient):
    """
    Blockfrost API adapter.

    Implements ``LedgerClient`` using Blockfrost's REST API. Wallet queries
    need a loaded ``WalletSigner``.
    """

    def __init__(
        self,
        config: Optional[SmartHandlesConfig] = None,
        signer: Optional[WalletSigner] = None,
    ):
        """
        Initialize the Blockfrost adapter.

        Args:
            config: Configuration. Uses global config if not provided.
            signer: Wallet whose address pays for and signs transactions
        """
        self.config = config or get_config()
        self.signer = signer
        self.base_url = self.config.blockfrost_url
        self.project_id = self.config.blockfrost_project_id
        self._client: Optional[httpx.AsyncClient] = None
        self._chain_context: Optional[BlockFrostChainContext] = None

    @property
    def headers(self) -> dict:
        """Get request headers with API key."""
        return {
            "project_id": self.project_id or "",
            "Content-Type": "application/json",
        }

    @property
    def network(self) -> Network:
        return self.config.pycardano_network

    async def connect(self) -> None:
        """Establish connection (create HTTP client)."""
        if self._client is not None:
            return

        if not self.project_id:
            raise NodeConnectionError("Blockfrost project ID not configured")

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=self.headers,
            timeout=30.0,
        )
        logger.info("blockfrost_connected", base_url=self.base_url)

    async def disconnect(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("blockfrost_disconnected")

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        """Make an API request. Returns ``None`` on 404."""
        if not self._client:
            await self.connect()

        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            logger.error("blockfrost_request_error", path=path, error=str(e))
            raise NodeConnectionError(f"Blockfrost request failed: {e}")

        if response.status_code == 404:
            return None

        if response.status_code != 200:
            logger.error(
                "blockfrost_request_failed",
                path=path,
                status=response.status_code,
                error=response.text,
            )
            raise NodeConnectionError(f"Blockfrost API error: {response.text}")

        return response.json()

    async def _get_reference_script(self, script_hash: str) -> Optional[PlutusV2Script]:
        data = await self._request("GET", f"/scripts/{script_hash}/cbor")
        if not data or not data.get("cbor"):
            return None
        return PlutusV2Script(bytes.fromhex(data["cbor"]))

    async def _parse_utxo(self, data: dict) -> UTxO:
        """Parse Blockfrost UTxO data into a pycardano ``UTxO``."""
        coin = 0
        multi_asset = MultiAsset()
        for amount in data["amount"]:
            unit = amount["unit"]
            quantity = int(amount["quantity"])
            if unit == "lovelace":
                coin = quantity
                continue

            policy_id = ScriptHash.from_primitive(unit[:56])
            if policy_id not in multi_asset:
                multi_asset[policy_id] = Asset()
            multi_asset[policy_id][AssetName(bytes.fromhex(unit[56:]))] = quantity

        tx_input = TransactionInput(
            TransactionId.from_primitive(data["tx_hash"]),
            int(data["output_index"]),
        )
        output = TransactionOutput(Address.from_primitive(data["address"]), Value(coin, multi_asset))

        if data.get("inline_datum"):
            output.datum = RawPlutusData.from_cbor(bytes.fromhex(data["inline_datum"]))
        elif data.get("data_hash"):
            output.datum_hash = DatumHash(bytes.fromhex(data["data_hash"]))

        if data.get("reference_script_hash"):
            output.script = await self._get_reference_script(data["reference_script_hash"])

        return UTxO(tx_input, output)

    async def get_utxo(self, tx_hash: str, output_index: int) -> Optional[UTxO]:
        """Get a specific UTxO, ``None`` if it does not exist or is spent."""
        data = await self._request("GET", f"/txs/{tx_hash}/utxos")
        if not data:
            return None

        for output in data.get("outputs", []):
            if int(output.get("output_index", -1)) != output_index:
                continue
            if output.get("consumed_by_tx"):
                return None
            output["tx_hash"] = tx_hash
            return await self._parse_utxo(output)

        return None

    async def get_utxos_by_refs(self, refs: Sequence[TransactionInput]) -> List[UTxO]:
        utxos = await asyncio.gather(
            *(self.get_utxo(ref.transaction_id.payload.hex(), ref.index) for ref in refs)
        )
        found = [utxo for utxo in utxos if utxo is not None]
        logger.debug("utxos_by_refs_fetched", requested=len(refs), found=len(found))
        return found

    async def get_utxos_at_address(self, address: Address) -> List[UTxO]:
        utxos = []
        page = 1

        while True:
            data = await self._request("GET", f"/addresses/{address}/utxos?page={page}")
            if not data:
                break

            for item in data:
                utxos.append(await self._parse_utxo(item))

            if len(data) < PAGE_SIZE:
                break
            page += 1

        logger.debug("utxos_fetched", address=str(address)[:20] + "...", count=len(utxos))
        return utxos

    def _require_signer(self) -> WalletSigner:
        if self.signer is None or not self.signer.is_loaded:
            raise NodeConnectionError("No wallet signing key loaded")
        return self.signer

    async def get_wallet_address(self) -> Address:
        return self._require_signer().address

    async def get_wallet_utxos(self) -> List[UTxO]:
        return await self.get_utxos_at_address(await self.get_wallet_address())

    @property
    def chain_context(self) -> BlockFrostChainContext:
        if self._chain_context is None:
            self._chain_context = BlockFrostChainContext(
                self.project_id,
                base_url=self.base_url,
            )
        return self._chain_context

    def new_tx(self) -> PyCardanoTxBuilder:
        return PyCardanoTxBuilder(self.chain_context, self._require_signer().address)
