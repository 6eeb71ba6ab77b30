"""Minimal ABIs for the contracts the tools talk to."""


def _fn(name, inputs, outputs=(), mutability="nonpayable"):
    return {
        "type": "function",
        "name": name,
        "stateMutability": mutability,
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [{"name": n, "type": t} for n, t in outputs],
    }


ERC20_ABI = [
    _fn("balanceOf", [("account", "address")], [("", "uint256")], "view"),
    _fn("decimals", [], [("", "uint8")], "view"),
    _fn("symbol", [], [("", "string")], "view"),
    _fn("name", [], [("", "string")], "view"),
    _fn("allowance", [("owner", "address"), ("spender", "address")], [("", "uint256")], "view"),
    _fn("approve", [("spender", "address"), ("amount", "uint256")], [("", "bool")]),
    _fn("transfer", [("to", "address"), ("amount", "uint256")], [("", "bool")]),
]

OWNABLE_ABI = [
    _fn("owner", [], [("", "address")], "view"),
    _fn("renounceOwnership", []),
]

UNISWAP_V2_ROUTER_ABI = [
    _fn(
        "getAmountsOut",
        [("amountIn", "uint256"), ("path", "address[]")],
        [("amounts", "uint256[]")],
        "view",
    ),
    _fn(
        "swapExactETHForTokens",
        [("amountOutMin", "uint256"), ("path", "address[]"), ("to", "address"), ("deadline", "uint256")],
        [("amounts", "uint256[]")],
        "payable",
    ),
    _fn(
        "swapExactTokensForETH",
        [
            ("amountIn", "uint256"),
            ("amountOutMin", "uint256"),
            ("path", "address[]"),
            ("to", "address"),
            ("deadline", "uint256"),
        ],
        [("amounts", "uint256[]")],
    ),
    _fn(
        "addLiquidityETH",
        [
            ("token", "address"),
            ("amountTokenDesired", "uint256"),
            ("amountTokenMin", "uint256"),
            ("amountETHMin", "uint256"),
            ("to", "address"),
            ("deadline", "uint256"),
        ],
        [("amountToken", "uint256"), ("amountETH", "uint256"), ("liquidity", "uint256")],
        "payable",
    ),
]

UNISWAP_V2_FACTORY_ABI = [
    _fn("getPair", [("tokenA", "address"), ("tokenB", "address")], [("pair", "address")], "view"),
]

UNISWAP_V2_PAIR_ABI = [
    _fn(
        "getReserves",
        [],
        [("reserve0", "uint112"), ("reserve1", "uint112"), ("blockTimestampLast", "uint32")],
        "view",
    ),
    _fn("token0", [], [("", "address")], "view"),
    _fn("token1", [], [("", "address")], "view"),
]

BASENAME_REGISTRAR_ABI = [
    {
        "type": "function",
        "name": "register",
        "stateMutability": "payable",
        "inputs": [
            {
                "name": "request",
                "type": "tuple",
                "components": [
                    {"name": "name", "type": "string"},
                    {"name": "owner", "type": "address"},
                    {"name": "duration", "type": "uint256"},
                    {"name": "resolver", "type": "address"},
                    {"name": "data", "type": "bytes[]"},
                    {"name": "reverseRecord", "type": "bool"},
                ],
            }
        ],
        "outputs": [],
    },
    _fn("registerPrice", [("name", "string"), ("duration", "uint256")], [("", "uint256")], "view"),
]

BASENAME_RESOLVER_ABI = [
    _fn("setAddr", [("node", "bytes32"), ("a", "address")]),
    _fn("setName", [("node", "bytes32"), ("newName", "string")]),
]

ZORA_1155_FACTORY_ABI = [
    {
        "type": "function",
        "name": "createContract",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "newContractURI", "type": "string"},
            {"name": "name", "type": "string"},
            {
                "name": "defaultRoyaltyConfiguration",
                "type": "tuple",
                "components": [
                    {"name": "royaltyMintSchedule", "type": "uint32"},
                    {"name": "royaltyBPS", "type": "uint32"},
                    {"name": "royaltyRecipient", "type": "address"},
                ],
            },
            {"name": "defaultAdmin", "type": "address"},
            {"name": "setupActions", "type": "bytes[]"},
        ],
        "outputs": [{"name": "", "type": "address"}],
    },
]

ZORA_1155_ABI = [
    _fn("setupNewToken", [("newURI", "string"), ("maxSupply", "uint256")], [("", "uint256")]),
    _fn("addPermission", [("tokenId", "uint256"), ("user", "address"), ("permissionBits", "uint256")]),
    _fn("callSale", [("tokenId", "uint256"), ("salesConfig", "address"), ("data", "bytes")]),
]

ZORA_FIXED_PRICE_SALE_ABI = [
    {
        "type": "function",
        "name": "setSale",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "tokenId", "type": "uint256"},
            {
                "name": "salesConfig",
                "type": "tuple",
                "components": [
                    {"name": "saleStart", "type": "uint64"},
                    {"name": "saleEnd", "type": "uint64"},
                    {"name": "maxTokensPerAddress", "type": "uint64"},
                    {"name": "pricePerToken", "type": "uint96"},
                    {"name": "fundsRecipient", "type": "address"},
                ],
            },
        ],
        "outputs": [],
    },
]
