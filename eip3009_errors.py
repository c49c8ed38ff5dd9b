# eip3009_errors.py


class ContractRevert(Exception):
    """
    Base class for every condition that aborts a token call.
    The reason string matches the revert message of the Solidity token.
    """

    reason = "execution reverted"

    def __init__(self, reason: str | None = None):
        self.reason = reason or self.reason
        super().__init__(self.reason)


class InvalidSignature(ContractRevert):
    reason = "EIP3009: invalid signature"


class AuthorizationNotYetValid(ContractRevert):
    reason = "EIP3009: authorization is not yet valid"


class AuthorizationExpired(ContractRevert):
    reason = "EIP3009: authorization is expired"


class AuthorizationAlreadyUsed(ContractRevert):
    reason = "EIP3009: authorization is used"


class CallerMustBePayee(ContractRevert):
    reason = "EIP3009: caller must be the payee"


class InsufficientBalance(ContractRevert):
    reason = "ERC20: transfer amount exceeds balance"


class InsufficientAllowance(ContractRevert):
    reason = "ERC20: transfer amount exceeds allowance"


class AllowanceBelowZero(ContractRevert):
    reason = "ERC20: decreased allowance below zero"


class ZeroAddress(ContractRevert):
    reason = "ERC20: transfer to the zero address"


class RelayError(RuntimeError):
    """Meta-tx was mined but did not succeed."""

    def __init__(self, message: str, tx_hash: str | None = None):
        super().__init__(message)
        self.tx_hash = tx_hash
