"""Leveraged staking loop simulator."""
