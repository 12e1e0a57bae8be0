"""
Action executor.

Turns a fully-resolved intent into exactly one ledger transaction and one
ExecutionOutcome. Every pre-check runs before anything is signed; a failed
pre-check never reaches the gateway.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple

from ..intents.directory import ENTITY_ID_RE, Directory
from ..intents.models import ActionType, Intent
from ..intents.validator import ArgumentValidator
from ..ledger.constants import HBAR_DECIMALS, HBAR_SYMBOL
from ..ledger.gateway import LedgerGateway
from ..ledger.models import (
    AccountSnapshot,
    LedgerErrorKind,
    LedgerResult,
    QueryTarget,
    Receipt,
    TransactionKind,
    TransactionSpec,
)
from ..ledger.session import LedgerSession
from ..ledger.units import AmountError, format_amount, to_smallest_unit
from ..recovery.errors import InsufficientFundsError
from .models import ExecutionOutcome

logger = logging.getLogger(__name__)

DEFAULT_SLIPPAGE_PERCENT = Decimal("2")
MAX_SLIPPAGE_PERCENT = Decimal("50")


class PreCheckFailed(Exception):
    """A pre-execution check failed; nothing may be submitted."""

    def __init__(self, reason: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(reason)
        self.reason = reason
        self.details = details or {}


@dataclass(frozen=True)
class Asset:
    """HBAR (``token_id`` None) or a fungible token."""
    symbol: str
    decimals: int
    token_id: Optional[str] = None

    @property
    def is_native(self) -> bool:
        return self.token_id is None

    def format(self, amount: int) -> str:
        return format_amount(amount, self.decimals, self.symbol)


HBAR_ASSET = Asset(symbol=HBAR_SYMBOL, decimals=HBAR_DECIMALS)


@dataclass
class ExecutionPlan:
    """The transaction to submit plus what the operator must be able to pay for it."""
    spec: TransactionSpec
    hbar_outlay: int = 0
    token_outlay: Optional[Tuple[Asset, int]] = None
    required_associations: List[Asset] = field(default_factory=list)
    output_asset: Optional[Asset] = None
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class _Context:
    session: LedgerSession
    operator: AccountSnapshot


Planner = Callable[[Mapping[str, str], _Context], Awaitable[ExecutionPlan]]


class ActionExecutor:
    """
    Executes resolved intents against the ledger.

    Responsibilities:
    - Re-validate arguments and run pre-checks (liveness, resolvability,
      exact amount scaling, balance sufficiency)
    - Map the action to a TransactionSpec in smallest-unit amounts
    - Submit through the gateway and normalize the result
    """

    def __init__(
        self,
        gateway: LedgerGateway,
        directory: Directory,
        validator: Optional[ArgumentValidator] = None,
    ):
        self.gateway = gateway
        self.directory = directory
        self.validator = validator or ArgumentValidator(directory)

        self._planners: Dict[ActionType, Planner] = {
            ActionType.TRANSFER: self._plan_transfer,
            ActionType.SWAP: self._plan_swap,
            ActionType.STAKE: self._plan_stake,
            ActionType.ASSOCIATE_TOKEN: self._plan_associate_token,
            ActionType.CREATE_TOPIC: self._plan_create_topic,
            ActionType.SEND_MESSAGE: self._plan_send_message,
        }

    async def execute(self, intent: Intent) -> ExecutionOutcome:
        action = intent.action_type.value

        try:
            plan = await self._prepare(intent)
        except PreCheckFailed as e:
            logger.info(f"Pre-check failed for {action} intent {intent.intent_id}: {e.reason}")
            return ExecutionOutcome.failed_validation(e.reason, action_type=action, details=e.details)
        except InsufficientFundsError as e:
            logger.info(f"Pre-check failed for {action} intent {intent.intent_id}: {e.message}")
            return ExecutionOutcome.failed_validation(
                e.message, action_type=action, details=dict(e.context.details)
            )

        logger.info(f"Submitting {plan.spec.kind.value} for intent {intent.intent_id}")
        result = await self.gateway.execute(plan.spec)
        return self._normalize(action, plan, result)

    # ------------------------------------------------------------------
    # Pre-checks
    # ------------------------------------------------------------------

    async def _prepare(self, intent: Intent) -> ExecutionPlan:
        args = intent.extracted_args

        validation = self.validator.validate(intent.action_type, args)
        if not validation.complete:
            names = validation.missing_names
            raise PreCheckFailed(
                f"Missing or invalid arguments: {', '.join(names)}",
                {"missingArgs": names},
            )

        context = await self._check_liveness()

        planner = self._planners.get(intent.action_type)
        if planner is None:
            raise PreCheckFailed(f"Action {intent.action_type.value} cannot be executed")

        plan = await planner(args, context)
        self._check_funds(plan, context)
        return plan

    async def _check_liveness(self) -> _Context:
        session = self.gateway.session
        if session is None:
            raise PreCheckFailed("Ledger network is not initialized")
        if not self.gateway.can_submit:
            raise PreCheckFailed("Ledger submission endpoint is not configured")

        result = await self.gateway.query(QueryTarget.account(session.operator_account_id))
        if not result.is_ok:
            error = result.error
            if error.kind == LedgerErrorKind.NOT_FOUND:
                raise PreCheckFailed(
                    f"Operator account {session.operator_account_id} not found on {session.network.value}"
                )
            raise PreCheckFailed(f"Ledger network unreachable: {error.detail}", {"errorKind": error.kind.value})

        return _Context(session=session, operator=result.value)

    async def _resolve_account(self, value: str, label: str, context: _Context) -> str:
        account_id = self.directory.resolve_account(value)
        if account_id is None:
            raise PreCheckFailed(
                f"Unknown {label} '{value}'. Use a known contact name or an account id (0.0.xxxxx)"
            )

        result = await self.gateway.query(QueryTarget.account(account_id))
        if not result.is_ok:
            if result.error.kind == LedgerErrorKind.NOT_FOUND:
                raise PreCheckFailed(
                    f"{label.capitalize()} account {account_id} does not exist on {context.session.network.value}"
                )
            raise PreCheckFailed(f"Could not verify {label} {account_id}: {result.error.detail}")
        return account_id

    async def _resolve_asset(self, value: Optional[str], context: _Context) -> Asset:
        text = (value or "").strip()
        if not text or text.upper() == HBAR_SYMBOL:
            return HBAR_ASSET

        token = self.directory.find_token(text)
        if token is not None:
            if token.is_native:
                return HBAR_ASSET
            return Asset(symbol=token.symbol, decimals=token.decimals, token_id=token.token_id)

        if not ENTITY_ID_RE.match(text):
            raise PreCheckFailed(f"Unknown token '{text}'")

        result = await self.gateway.query(QueryTarget.token(text))
        if not result.is_ok:
            if result.error.kind == LedgerErrorKind.NOT_FOUND:
                raise PreCheckFailed(f"Token {text} does not exist on {context.session.network.value}")
            raise PreCheckFailed(f"Could not verify token {text}: {result.error.detail}")
        snapshot = result.value
        return Asset(symbol=snapshot.symbol or text, decimals=snapshot.decimals, token_id=snapshot.token_id)

    @staticmethod
    def _scale(amount: str, asset: Asset) -> int:
        try:
            scaled = to_smallest_unit(amount, asset.decimals)
        except AmountError:
            raise PreCheckFailed(
                f"Amount {amount} {asset.symbol} cannot be represented exactly "
                f"({asset.symbol} has {asset.decimals} decimal places)"
            ) from None
        if scaled <= 0:
            raise PreCheckFailed(f"Amount must be greater than zero, got {amount}")
        return scaled

    def _check_funds(self, plan: ExecutionPlan, context: _Context) -> None:
        operator = context.operator
        fee_ceiling = context.session.max_transaction_fee

        required_hbar = plan.hbar_outlay + fee_ceiling
        if operator.balance < required_hbar:
            raise InsufficientFundsError(
                f"Insufficient HBAR balance: need {HBAR_ASSET.format(required_hbar)} "
                f"(amount plus {HBAR_ASSET.format(fee_ceiling)} fee ceiling), "
                f"have {HBAR_ASSET.format(operator.balance)}",
                required=str(required_hbar),
                available=str(operator.balance),
                token=HBAR_SYMBOL,
            )

        if plan.token_outlay is not None:
            asset, amount = plan.token_outlay
            held = operator.tokens.get(asset.token_id)
            if held is None:
                raise PreCheckFailed(
                    f"{asset.symbol} ({asset.token_id}) is not associated with operator account {operator.account_id}"
                )
            if held < amount:
                raise InsufficientFundsError(
                    f"Insufficient {asset.symbol} balance: need {asset.format(amount)}, have {asset.format(held)}",
                    required=str(amount),
                    available=str(held),
                    token=asset.symbol,
                )

        for asset in plan.required_associations:
            if asset.token_id not in operator.tokens:
                raise PreCheckFailed(
                    f"Associate {asset.symbol} ({asset.token_id}) with the operator account before receiving it"
                )

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def _plan_transfer(self, args: Mapping[str, str], context: _Context) -> ExecutionPlan:
        operator_id = context.session.operator_account_id
        recipient_id = await self._resolve_account(args["recipient"], "recipient", context)
        if recipient_id == operator_id:
            raise PreCheckFailed("Recipient is the operator account itself")

        asset = await self._resolve_asset(args.get("tokenId"), context)
        amount = self._scale(args["amount"], asset)
        memo = (args.get("memo") or "").strip() or None

        details = {
            "from": operator_id,
            "to": recipient_id,
            "recipient": args["recipient"],
            "amount": asset.format(amount),
            "token": asset.symbol,
        }
        if asset.is_native:
            spec = TransactionSpec(
                kind=TransactionKind.CRYPTO_TRANSFER,
                operator_account=operator_id,
                counterparty_account=recipient_id,
                amount=amount,
                memo=memo,
            )
            return ExecutionPlan(spec=spec, hbar_outlay=amount, details=details)

        spec = TransactionSpec(
            kind=TransactionKind.TOKEN_TRANSFER,
            operator_account=operator_id,
            counterparty_account=recipient_id,
            token_id=asset.token_id,
            amount=amount,
            memo=memo,
        )
        details["tokenId"] = asset.token_id
        return ExecutionPlan(spec=spec, token_outlay=(asset, amount), details=details)

    async def _plan_swap(self, args: Mapping[str, str], context: _Context) -> ExecutionPlan:
        source = await self._resolve_asset(args["fromToken"], context)
        target = await self._resolve_asset(args["toToken"], context)
        if source == target:
            raise PreCheckFailed(f"Cannot swap {source.symbol} for itself")

        amount = self._scale(args["amount"], source)
        slippage = self._parse_slippage(args.get("slippage"))

        spec = TransactionSpec(
            kind=TransactionKind.SWAP,
            operator_account=context.session.operator_account_id,
            token_id=source.token_id,
            output_token_id=target.token_id,
            amount=amount,
            slippage_bps=int(slippage * 100),
        )
        plan = ExecutionPlan(
            spec=spec,
            output_asset=target,
            details={
                "from": context.session.operator_account_id,
                "fromToken": source.symbol,
                "toToken": target.symbol,
                "amount": source.format(amount),
                "slippage": f"{slippage.normalize():f}%",
            },
        )
        if source.is_native:
            plan.hbar_outlay = amount
        else:
            plan.token_outlay = (source, amount)
        if not target.is_native:
            plan.required_associations.append(target)
        return plan

    @staticmethod
    def _parse_slippage(value: Optional[str]) -> Decimal:
        text = (value or "").strip()
        if not text:
            return DEFAULT_SLIPPAGE_PERCENT
        try:
            slippage = Decimal(text)
        except InvalidOperation:
            raise PreCheckFailed(f"Invalid slippage '{value}'") from None
        if not slippage.is_finite() or slippage <= 0 or slippage > MAX_SLIPPAGE_PERCENT:
            raise PreCheckFailed(f"Slippage must be between 0 and {MAX_SLIPPAGE_PERCENT}%")
        # Basis points are whole numbers
        if (slippage * 100) != (slippage * 100).to_integral_value():
            raise PreCheckFailed("Slippage supports at most two decimal places")
        return slippage

    async def _plan_stake(self, args: Mapping[str, str], context: _Context) -> ExecutionPlan:
        amount = self._scale(args["amount"], HBAR_ASSET)
        validator_id = None
        if (args.get("validator") or "").strip():
            validator_id = await self._resolve_account(args["validator"], "validator", context)

        spec = TransactionSpec(
            kind=TransactionKind.STAKE,
            operator_account=context.session.operator_account_id,
            counterparty_account=validator_id,
            amount=amount,
        )
        return ExecutionPlan(
            spec=spec,
            hbar_outlay=amount,
            details={
                "from": context.session.operator_account_id,
                "amount": HBAR_ASSET.format(amount),
                "validator": validator_id or context.session.node_account_id,
            },
        )

    async def _plan_associate_token(self, args: Mapping[str, str], context: _Context) -> ExecutionPlan:
        asset = await self._resolve_asset(args["tokenId"], context)
        if asset.is_native:
            raise PreCheckFailed("HBAR is the native currency and needs no association")
        if asset.token_id in context.operator.tokens:
            raise PreCheckFailed(
                f"{asset.symbol} ({asset.token_id}) is already associated with {context.operator.account_id}"
            )

        spec = TransactionSpec(
            kind=TransactionKind.TOKEN_ASSOCIATE,
            operator_account=context.session.operator_account_id,
            token_id=asset.token_id,
        )
        return ExecutionPlan(
            spec=spec,
            details={"account": context.session.operator_account_id, "token": asset.symbol, "tokenId": asset.token_id},
        )

    async def _plan_create_topic(self, args: Mapping[str, str], context: _Context) -> ExecutionPlan:
        memo = args["memo"].strip()
        spec = TransactionSpec(
            kind=TransactionKind.TOPIC_CREATE,
            operator_account=context.session.operator_account_id,
            memo=memo,
        )
        return ExecutionPlan(spec=spec, details={"memo": memo})

    async def _plan_send_message(self, args: Mapping[str, str], context: _Context) -> ExecutionPlan:
        topic_id = args["topicId"].strip()
        result = await self.gateway.query(QueryTarget.topic(topic_id))
        if not result.is_ok:
            if result.error.kind == LedgerErrorKind.NOT_FOUND:
                raise PreCheckFailed(f"Topic {topic_id} does not exist on {context.session.network.value}")
            raise PreCheckFailed(f"Could not verify topic {topic_id}: {result.error.detail}")

        spec = TransactionSpec(
            kind=TransactionKind.TOPIC_MESSAGE,
            operator_account=context.session.operator_account_id,
            topic_id=topic_id,
            message=args["message"],
        )
        return ExecutionPlan(spec=spec, details={"topicId": topic_id, "message": args["message"]})

    # ------------------------------------------------------------------
    # Outcome normalization
    # ------------------------------------------------------------------

    def _normalize(self, action: str, plan: ExecutionPlan, result: LedgerResult[Receipt]) -> ExecutionOutcome:
        if not result.is_ok:
            error = result.error
            if error.kind == LedgerErrorKind.REJECTED:
                logger.warning(f"{action} rejected by ledger: {error.status} (tx {error.transaction_id})")
                return ExecutionOutcome.failed_execution(
                    receipt_status=error.status,
                    transaction_id=error.transaction_id,
                    action_type=action,
                    error_detail=f"Transaction rejected by the ledger: {error.status}",
                    details=plan.details,
                )
            if error.is_transient:
                logger.error(f"{action} failed in transit ({error.kind.value}): {error.detail}")
                return ExecutionOutcome.failed_network(
                    f"{error.kind.value}: {error.detail}",
                    transaction_id=error.transaction_id,
                    action_type=action,
                    details=plan.details,
                )
            logger.warning(f"{action} could not be submitted ({error.kind.value}): {error.detail}")
            return ExecutionOutcome.failed_validation(error.detail, action_type=action, details=plan.details)

        receipt: Receipt = result.value
        if not receipt.is_success:
            logger.warning(f"{action} failed on ledger: {receipt.status} (tx {receipt.transaction_id})")
            return ExecutionOutcome.failed_execution(
                receipt_status=receipt.status,
                transaction_id=receipt.transaction_id,
                action_type=action,
                details=plan.details,
            )

        details = dict(plan.details)
        if plan.spec.kind == TransactionKind.TOPIC_CREATE and receipt.entity_id:
            details["topicId"] = receipt.entity_id
        if plan.output_asset is not None and "outputAmount" in receipt.details:
            details["received"] = plan.output_asset.format(int(receipt.details["outputAmount"]))
        if plan.spec.kind == TransactionKind.TOPIC_MESSAGE and "topicSequenceNumber" in receipt.details:
            details["sequenceNumber"] = receipt.details["topicSequenceNumber"]

        logger.info(f"{action} succeeded: {receipt.transaction_id}")
        return ExecutionOutcome.success(
            transaction_id=receipt.transaction_id,
            receipt_status=receipt.status,
            action_type=action,
            details=details,
        )
