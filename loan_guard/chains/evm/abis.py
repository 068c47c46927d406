"""Minimal contract ABIs — one entry per function name.

Overloaded variants (e.g. the gauge's ``withdraw(uint256,bool)`` or the
pool's three-argument ``remove_liquidity_one_coin``) are left out so calls
resolve by plain name.
"""
from __future__ import annotations

from typing import Any

ERC20_ABI: list[dict[str, Any]] = [
    {
        "inputs": [{"internalType": "address", "name": "account", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]

LENDING_POOL_ABI: list[dict[str, Any]] = [
    {
        "inputs": [{"internalType": "address", "name": "user", "type": "address"}],
        "name": "getUserAccountData",
        "outputs": [
            {"internalType": "uint256", "name": "totalCollateralETH", "type": "uint256"},
            {"internalType": "uint256", "name": "totalDebtETH", "type": "uint256"},
            {"internalType": "uint256", "name": "availableBorrowsETH", "type": "uint256"},
            {"internalType": "uint256", "name": "currentLiquidationThreshold", "type": "uint256"},
            {"internalType": "uint256", "name": "ltv", "type": "uint256"},
            {"internalType": "uint256", "name": "healthFactor", "type": "uint256"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"internalType": "address", "name": "asset", "type": "address"},
            {"internalType": "uint256", "name": "amount", "type": "uint256"},
            {"internalType": "uint256", "name": "rateMode", "type": "uint256"},
            {"internalType": "address", "name": "onBehalfOf", "type": "address"},
        ],
        "name": "repay",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]

GAUGE_ABI: list[dict[str, Any]] = [
    {
        "inputs": [{"name": "addr", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"name": "_value", "type": "uint256"}],
        "name": "withdraw",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]

STABLE_POOL_ABI: list[dict[str, Any]] = [
    {
        "inputs": [],
        "name": "get_virtual_price",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "_token_amount", "type": "uint256"},
            {"name": "i", "type": "int128"},
        ],
        "name": "calc_withdraw_one_coin",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "_token_amount", "type": "uint256"},
            {"name": "i", "type": "int128"},
            {"name": "_min_amount", "type": "uint256"},
            {"name": "_use_underlying", "type": "bool"},
        ],
        "name": "remove_liquidity_one_coin",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]
