"""1155 NFT collections: IPFS metadata and an on-chain create with a fixed-price sale."""

import asyncio
from typing import Any

from loguru import logger

from huddle.agent.progress import ProgressReporter
from huddle.agent.tools.common import PersonaTool, schema
from huddle.agent.tools.errors import InvalidInputError, ServiceUnavailableError
from huddle.chain import ChainClient, checksum
from huddle.chain.abi import ZORA_1155_ABI, ZORA_1155_FACTORY_ABI, ZORA_FIXED_PRICE_SALE_ABI
from huddle.integrations import PinataClient, make_thumbnail
from huddle.notify import EventName

PIN_HUMOR = [
    (
        10.0,
        "Still uploading to IPFS... decentralized storage is like watching paint dry, "
        "only more permanent",
    ),
    (
        20.0,
        "Still uploading to IPFS... they say it stands for \"I Patiently Face Slowness\", "
        "but at least our data will outlive us all",
    ),
]

FIRST_TOKEN_ID = 1
PERMISSION_BIT_MINTER = 2**2
UNLIMITED_SUPPLY = 2**256 - 1
SALE_FOREVER = 2**64 - 1


def collection_link(address: str) -> str:
    return f"https://zora.co/collect/zora:{address.lower()}"


async def pin_contract_metadata(pinata: PinataClient, image: bytes, name: str, description: str) -> str:
    image_uri = await pinata.pin_file(image, "image.png", name=f"{name} image")
    return await pinata.pin_json(
        {"name": name, "description": description or "A unique AI-generated artwork collection", "image": image_uri},
        name=f"{name} contract metadata",
    )


async def pin_token_metadata(
    pinata: PinataClient, image: bytes, thumbnail: bytes, name: str, description: str
) -> str:
    media_uri, thumb_uri = await asyncio.gather(
        pinata.pin_file(image, "image.png", name=f"{name} media"),
        pinata.pin_file(thumbnail, "thumbnail.png", name=f"{name} thumbnail"),
    )
    return await pinata.pin_json(
        {
            "name": name,
            "description": description or "A unique AI-generated artwork",
            "image": thumb_uri,
            "content": {"mime": "image/png", "uri": media_uri},
        },
        name=f"{name} token metadata",
    )


class CreateNFTTool(PersonaTool):
    """
    Mint a one-token 1155 collection from a stored image.

    The image and its metadata are pinned while a progress reporter keeps
    the viewer company; the reporter is cancelled as soon as both pins
    resolve (or fail), so no stale status line arrives after the result.
    """

    @property
    def name(self) -> str:
        return "Create_NFT_Tool"

    @property
    def description(self) -> str:
        return (
            "Creates and deploys an NFT collection on Zora from an image created with "
            "Create_Image_Tool, and returns the collection link for Yasmin to promote."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return schema(
            {
                "imageKey": {"type": "string", "description": "imageKey returned by Create_Image_Tool."},
                "NFTName": {"type": "string", "description": "Name of the NFT collection."},
                "description": {"type": "string", "description": "Description of the NFT."},
            },
            required=["imageKey", "NFTName"],
        )

    @property
    def toolset(self) -> str:
        return "wallet"

    def is_available(self) -> bool:
        return self.deps.pinata is not None and self.deps.nft_chain is not None

    async def execute(self, imageKey: str, NFTName: str, description: str = "", **kwargs: Any) -> dict[str, Any]:
        ident = self.identity(kwargs)
        deps = self.deps
        if deps.pinata is None or deps.nft_chain is None or deps.assets is None:
            raise ServiceUnavailableError("NFT minting needs Pinata, the NFT chain RPC and the asset store")
        wallet = await self.wallet_for(ident)

        try:
            image = deps.assets.get(imageKey)
        except (FileNotFoundError, ValueError) as e:
            raise InvalidInputError(str(e)) from e
        thumb_key = imageKey.rsplit("/", 1)[0] + "/thumbnail.png" if "/" in imageKey else ""
        if thumb_key and deps.assets.exists(thumb_key):
            thumbnail = deps.assets.get(thumb_key)
        else:
            thumbnail = make_thumbnail(image, deps.settings.images.thumbnail_size)

        await self.say(ident, "I'm uploading your NFT's content to IPFS for permanent storage...")
        async with ProgressReporter(lambda text: self.say(ident, text), PIN_HUMOR, sleep=deps.sleep):
            contract_uri, token_uri = await asyncio.gather(
                pin_contract_metadata(deps.pinata, image, NFTName, description),
                pin_token_metadata(deps.pinata, image, thumbnail, NFTName, description),
            )
        await self.say(ident, "Finally... metadata is ready, now creating your NFT contract onchain...")

        address, tx_hash = await self._create_collection(
            deps.nft_chain, wallet.private_key, wallet.address, NFTName, contract_uri, token_uri
        )
        link = collection_link(address)
        logger.info(f"NFT collection {NFTName} created at {address}")

        await self.say(ident, f"Your NFT has been created at contract address: {address}")
        metadata = {"contractAddress": address, "NFTName": NFTName, "zoraLink": link}
        await self.announce(ident, EventName.NFT_CREATED, metadata)
        await self.record(ident, EventName.NFT_CREATED.value, {**metadata, "transactionHash": tx_hash})
        return {"contractAddress": address, "zoraLink": link, "NFTName": NFTName, "transactionHash": tx_hash}

    async def _create_collection(
        self,
        chain: ChainClient,
        private_key: str,
        owner: str,
        name: str,
        contract_uri: str,
        token_uri: str,
    ) -> tuple[str, str]:
        cfg = self.deps.settings.chain
        owner = checksum(owner)
        minter = checksum(cfg.nft_fixed_price_minter_address)
        sale = chain.encode_call(
            minter,
            ZORA_FIXED_PRICE_SALE_ABI,
            "setSale",
            FIRST_TOKEN_ID,
            (0, SALE_FOREVER, 0, cfg.nft_mint_price_wei, owner),
        )
        actions = [
            chain.encode_call(None, ZORA_1155_ABI, "setupNewToken", token_uri, UNLIMITED_SUPPLY),
            chain.encode_call(None, ZORA_1155_ABI, "addPermission", FIRST_TOKEN_ID, minter, PERMISSION_BIT_MINTER),
            chain.encode_call(None, ZORA_1155_ABI, "callSale", FIRST_TOKEN_ID, minter, bytes.fromhex(sale.removeprefix("0x"))),
        ]
        setup = [bytes.fromhex(a.removeprefix("0x")) for a in actions]
        args = (contract_uri, name, (0, 0, owner), owner, setup)

        # The factory is deterministic, so a dry run yields the new address.
        address = await chain.simulate(owner, cfg.nft_factory_address, ZORA_1155_FACTORY_ABI, "createContract", *args)
        tx_hash = await chain.transact(private_key, cfg.nft_factory_address, ZORA_1155_FACTORY_ABI, "createContract", *args)
        await self.confirm(tx_hash, chain=chain)
        return checksum(address), tx_hash