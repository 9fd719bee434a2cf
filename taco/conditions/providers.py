"""
The capabilities conditions need from the outside world:

    - ConditionProvider: read chain state
    - Signer: sign a message

along with their web3.py/eth-account adapters.
"""

from typing import Any, Dict, Iterator, List, Optional, Union

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_typing import BlockIdentifier, ChecksumAddress
from typing_extensions import Protocol, runtime_checkable
from web3 import HTTPProvider, Web3
from web3.contract.contract import ContractFunction
from web3.middleware import ExtraDataToPOAMiddleware
from web3.providers import BaseProvider

from taco.conditions.exceptions import InvalidConnectionToChain, NoConnectionToChain
from taco.config.constants import JSON_REQUEST_TIMEOUT
from taco.utilities.logging import Logger


@runtime_checkable
class ConditionProvider(Protocol):
    """Read access to the state of a single chain"""

    def get_chain_id(self) -> int:
        ...

    def call_contract_function(self, contract_function: ContractFunction) -> Any:
        ...

    def get_balance(
        self, address: ChecksumAddress, block: BlockIdentifier = "latest"
    ) -> int:
        ...

    def get_block_timestamp(self, block: BlockIdentifier = "latest") -> int:
        ...


@runtime_checkable
class Signer(Protocol):
    def get_address(self) -> ChecksumAddress:
        ...

    def sign_message(self, message: bytes) -> bytes:
        ...


class Web3ConditionProvider:
    """ConditionProvider backed by a web3.py provider"""

    def __init__(
        self,
        provider: Union[str, BaseProvider],
        timeout: int = JSON_REQUEST_TIMEOUT,
    ):
        if isinstance(provider, str):
            provider = HTTPProvider(provider, request_kwargs={"timeout": timeout})
        self.w3 = self._configure_w3(provider)

    def __repr__(self):
        return f"{self.__class__.__name__}({self.w3.provider})"

    @staticmethod
    def _configure_w3(provider: BaseProvider) -> Web3:
        # Instantiate a local web3 instance
        w3 = Web3(provider)
        # inject web3 middleware to handle POA chain extra_data field.
        w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0, name="poa")
        return w3

    def get_chain_id(self) -> int:
        return self.w3.eth.chain_id

    def call_contract_function(self, contract_function: ContractFunction) -> Any:
        """eth_call of a bound contract function, returning its decoded output"""
        contract_function.w3 = self.w3
        return contract_function.call()  # onchain read

    def get_balance(
        self, address: ChecksumAddress, block: BlockIdentifier = "latest"
    ) -> int:
        return self.w3.eth.get_balance(address, block)

    def get_block_timestamp(self, block: BlockIdentifier = "latest") -> int:
        return self.w3.eth.get_block(block)["timestamp"]


class LocalAccountSigner:
    """Signer for an in-memory key"""

    def __init__(self, private_key: Optional[Union[bytes, str]] = None):
        if private_key:
            account = Account.from_key(private_key)
        else:
            account = Account.create()
        self.__account = account

    def __repr__(self):
        return f"{self.__class__.__name__}({self.get_address()})"

    def get_address(self) -> ChecksumAddress:
        return self.__account.address

    def sign_message(self, message: bytes) -> bytes:
        signable_message = encode_defunct(primitive=message)
        signed_message = self.__account.sign_message(signable_message)
        return bytes(signed_message.signature)


class ConditionProviderManager:
    """Providers available for condition evaluation, keyed by chain ID."""

    def __init__(self, providers: Dict[int, List[ConditionProvider]]):
        self.providers = providers
        self.logger = Logger(__name__)

    @classmethod
    def from_endpoints(
        cls, endpoints: Dict[int, List[str]], timeout: int = JSON_REQUEST_TIMEOUT
    ) -> "ConditionProviderManager":
        providers = {
            chain_id: [Web3ConditionProvider(uri, timeout=timeout) for uri in uris]
            for chain_id, uris in endpoints.items()
        }
        return cls(providers=providers)

    def providers_for(self, chain_id: int) -> Iterator[ConditionProvider]:
        """Yields the providers for a chain, skipping any connected to a different chain."""
        condition_providers = self.providers.get(chain_id, None)
        if not condition_providers:
            raise NoConnectionToChain(chain=chain_id)

        iterator_returned_at_least_one = False
        for provider in condition_providers:
            try:
                self._check_chain_id(chain_id, provider)
            except InvalidConnectionToChain as e:
                # misconfigured endpoint
                self.logger.warn(str(e))
                continue
            yield provider
            iterator_returned_at_least_one = True

        # if we get here, it is because there were endpoints, but issue with configuring them
        if not iterator_returned_at_least_one:
            raise NoConnectionToChain(
                chain=chain_id,
                message=f"Problematic provider endpoints for chain ID {chain_id}",
            )

    @staticmethod
    def _check_chain_id(chain_id: int, provider: ConditionProvider) -> None:
        """
        Validates that the provider is *actually* connected to the expected chain ID.
        """
        provider_chain = provider.get_chain_id()
        if provider_chain != chain_id:
            raise InvalidConnectionToChain(
                expected_chain=chain_id,
                actual_chain=provider_chain,
            )
