"""ValidatorSetContract: Validator set read from an on-chain contract."""

from __future__ import annotations

import logging
import os

from web3 import Web3
from web3.exceptions import Web3Exception

from .errors import ValidatorSetError
from .ValidatorSet import ValidatorSet

logger = logging.getLogger(__name__)

NETWORKS: dict[str, str] = {
    "sapphire": "https://sapphire.oasis.io",
    "sapphire-testnet": "https://testnet.sapphire.oasis.io",
    "sapphire-localnet": "http://localhost:8545",
}

VALIDATOR_SET_ABI: list[dict] = [
    {
        "inputs": [],
        "name": "getActiveValidators",
        "outputs": [{"internalType": "address[]", "name": "", "type": "address[]"}],
        "stateMutability": "view",
        "type": "function",
    }
]


class ValidatorSetContract(ValidatorSet):
    """Validator set exposed by a contract's ``getActiveValidators()`` view.

    :ivar w3: Web3 instance used for calls.
    :ivar contract: Bound validator set contract.
    """

    def __init__(self, w3: Web3, address: str) -> None:
        """Initialize the contract validator set.

        :param w3: Connected Web3 instance.
        :param address: Validator set contract address.
        """
        self.w3 = w3
        self.contract = w3.eth.contract(
            address=Web3.to_checksum_address(address), abi=VALIDATOR_SET_ABI
        )

    @classmethod
    def from_network(cls, network_name: str, address: str) -> ValidatorSetContract:
        """Connect to a network and bind the validator set contract.

        :param network_name: Network name (sapphire, sapphire-testnet,
            sapphire-localnet) or an RPC URL.
        :param address: Validator set contract address.
        :returns: New ValidatorSetContract instance.
        """
        # RPC_URL env var overrides the default for the network
        rpc_url = os.environ.get("RPC_URL") or NETWORKS.get(network_name, network_name)
        logger.info(f"Reading validator set from {address} via {rpc_url}")
        return cls(Web3(Web3.HTTPProvider(rpc_url)), address)

    def get_active_validators(self) -> list[str]:
        try:
            validators = self.contract.functions.getActiveValidators().call()
        except (Web3Exception, OSError) as exc:
            raise ValidatorSetError(f"getActiveValidators() failed: {exc}") from exc
        return [Web3.to_checksum_address(v) for v in validators]
