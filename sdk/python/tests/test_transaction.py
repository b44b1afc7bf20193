"""Tests for relyo_sdk.transaction — canonical encodings, builder, validator."""

from __future__ import annotations

import pytest
from blake3 import blake3

from relyo_sdk.exceptions import FormatError, IncompleteTransactionError, ValidationError
from relyo_sdk.identity import generate_keypair
from relyo_sdk.transaction import (
    SIGNING_DOMAIN,
    TransactionBuilder,
    TransactionValidator,
    ValidationResult,
    check_uint64,
    compute_total_cost,
    compute_transaction_id,
    sign_transaction,
    signable_bytes,
    signing_message,
    validate_transaction,
    verify_transaction_signature,
)
from relyo_sdk.types import SignedTransaction, TransactionData, TransactionParams
from relyo_sdk.wallet import Wallet

ONE_RELYO = "1000000000000000000"
SENDER = "aa" * 32
RECIPIENT = "bb" * 32
TIMESTAMP = 1700000000000


def _scenario_data() -> TransactionData:
    return TransactionData(
        sender=SENDER,
        to=RECIPIENT,
        amount=ONE_RELYO,
        fee=ONE_RELYO,
        nonce=0,
        timestamp=TIMESTAMP,
    )


@pytest.fixture
def secret_key() -> bytes:
    return generate_keypair().secret_key


@pytest.fixture
def scenario_tx(secret_key: bytes) -> SignedTransaction:
    return sign_transaction(_scenario_data(), secret_key)


# ---------------------------------------------------------------------------
# Canonical encodings
# ---------------------------------------------------------------------------


class TestCanonicalEncodings:
    def test_signing_message_layout(self) -> None:
        msg = signing_message(SENDER, RECIPIENT, ONE_RELYO, "5", 3, TIMESTAMP)
        assert msg == f"RELYO:transfer:{SENDER}:{RECIPIENT}:{ONE_RELYO}:5:3:{TIMESTAMP}".encode()

    def test_signing_message_starts_with_domain(self) -> None:
        assert signable_bytes(_scenario_data()).startswith(SIGNING_DOMAIN.encode() + b":")

    def test_transaction_id_matches_blake3_of_canonical_string(self) -> None:
        expected = blake3(
            f"tx:{SENDER}:{RECIPIENT}:{ONE_RELYO}:{ONE_RELYO}:0:{TIMESTAMP}".encode()
        ).hexdigest()
        assert compute_transaction_id(_scenario_data()) == expected

    def test_transaction_id_is_64_hex_and_deterministic(self) -> None:
        tx_id = compute_transaction_id(_scenario_data())
        assert len(tx_id) == 64
        int(tx_id, 16)
        assert compute_transaction_id(_scenario_data()) == tx_id

    def test_transaction_id_differs_from_signing_message_hash(self) -> None:
        tx_id = compute_transaction_id(_scenario_data())
        assert tx_id != blake3(signable_bytes(_scenario_data())).hexdigest()

    def test_transaction_id_ignores_signature(self, scenario_tx: SignedTransaction) -> None:
        resigned = scenario_tx.model_copy(update={"signature": "11" * 64, "public_key": "22" * 32})
        assert compute_transaction_id(resigned) == compute_transaction_id(scenario_tx)

    def test_transaction_id_changes_with_nonce(self) -> None:
        bumped = _scenario_data().model_copy(update={"nonce": 1})
        assert compute_transaction_id(bumped) != compute_transaction_id(_scenario_data())

    def test_total_cost_uses_arbitrary_precision(self) -> None:
        tx = _scenario_data().model_copy(update={"amount": str(2**70), "fee": str(2**65)})
        assert compute_total_cost(tx) == 2**70 + 2**65

    def test_total_cost_rejects_malformed_amount(self) -> None:
        tx = _scenario_data().model_copy(update={"amount": "-5"})
        with pytest.raises(FormatError):
            compute_total_cost(tx)


# ---------------------------------------------------------------------------
# Signature verification
# ---------------------------------------------------------------------------


class TestSignatureVerification:
    def test_scenario_signature_accepted(self, scenario_tx: SignedTransaction) -> None:
        assert len(scenario_tx.signature) == 128
        assert verify_transaction_signature(scenario_tx) is True

    @pytest.mark.parametrize(
        "field, value",
        [
            ("sender", "cc" * 32),
            ("to", "cc" * 32),
            ("amount", "1000000000000000001"),
            ("fee", "999999999999999999"),
            ("nonce", 1),
            ("timestamp", TIMESTAMP + 1),
        ],
    )
    def test_mutated_field_rejected(self, scenario_tx: SignedTransaction, field: str, value) -> None:
        mutated = scenario_tx.model_copy(update={field: value})
        assert verify_transaction_signature(mutated) is False

    def test_garbage_signature_rejected(self, scenario_tx: SignedTransaction) -> None:
        assert verify_transaction_signature(scenario_tx.model_copy(update={"signature": "zz"})) is False

    def test_other_public_key_rejected(self, scenario_tx: SignedTransaction) -> None:
        other = generate_keypair().public_key.hex()
        assert verify_transaction_signature(scenario_tx.model_copy(update={"public_key": other})) is False


# ---------------------------------------------------------------------------
# Validator
# ---------------------------------------------------------------------------


class TestValidator:
    def test_wallet_transaction_is_valid(self) -> None:
        wallet = Wallet.create()
        tx = wallet.create_transaction(RECIPIENT, ONE_RELYO, "1000", nonce=4)
        assert validate_transaction(tx) == ValidationResult(True, None)

    def test_self_transfer_rejected_regardless_of_signature(self) -> None:
        tx = SignedTransaction(
            sender=SENDER,
            to=SENDER,
            amount="1",
            fee="1",
            nonce=0,
            timestamp=TIMESTAMP,
            public_key="00" * 32,
            signature="00" * 64,
        )
        assert validate_transaction(tx) == ValidationResult(False, "Cannot send to self")

    def test_self_transfer_detected_across_prefix_and_case(self) -> None:
        wallet = Wallet.create()
        tx = wallet.create_transaction(RECIPIENT, "1", "1", nonce=0)
        tx = tx.model_copy(update={"to": "0x" + wallet.address.upper()})
        assert validate_transaction(tx).error == "Cannot send to self"

    @pytest.mark.parametrize(
        "update, reason",
        [
            ({"sender": "xyz"}, "Invalid sender address"),
            ({"to": "bb" * 31}, "Invalid recipient address"),
            ({"to": "bb" * 31 + "b\n"}, "Invalid recipient address"),
            ({"amount": "-1"}, "Invalid amount"),
            ({"amount": "1.5"}, "Invalid amount"),
            ({"amount": "1\n"}, "Invalid amount"),
            ({"fee": "abc"}, "Invalid fee"),
        ],
    )
    def test_structural_failures(self, scenario_tx: SignedTransaction, update: dict, reason: str) -> None:
        result = validate_transaction(scenario_tx.model_copy(update=update))
        assert result.valid is False
        assert result.error == reason

    def test_checks_run_in_order(self, scenario_tx: SignedTransaction) -> None:
        tx = scenario_tx.model_copy(update={"sender": "bad", "amount": "bad"})
        assert validate_transaction(tx).error == "Invalid sender address"

    def test_sender_binding_enforced_by_default(self, scenario_tx: SignedTransaction) -> None:
        # Signature is valid, but "aa"*32 is not the signer's address.
        result = validate_transaction(scenario_tx)
        assert result == ValidationResult(False, "Public key does not match sender address")

    def test_sender_binding_can_be_disabled(self, scenario_tx: SignedTransaction) -> None:
        validator = TransactionValidator(require_sender_binding=False)
        assert validator.validate(scenario_tx).valid is True

    def test_malformed_public_key(self, scenario_tx: SignedTransaction) -> None:
        result = validate_transaction(scenario_tx.model_copy(update={"public_key": "abcd"}))
        assert result.error == "Invalid public key"

    @pytest.mark.parametrize("tail", ["\n", " ", "\t"])
    def test_whitespace_terminated_public_key(self, tail: str) -> None:
        wallet = Wallet.create()
        tx = wallet.create_transaction(RECIPIENT, "5", "1", nonce=0)
        tx = tx.model_copy(update={"public_key": tx.public_key[:63] + tail})
        assert validate_transaction(tx) == ValidationResult(False, "Invalid public key")
        unbound = TransactionValidator(require_sender_binding=False)
        assert unbound.validate(tx) == ValidationResult(False, "Invalid signature")

    def test_whitespace_terminated_signature(self) -> None:
        wallet = Wallet.create()
        tx = wallet.create_transaction(RECIPIENT, "5", "1", nonce=0)
        tx = tx.model_copy(update={"signature": tx.signature[:127] + "\n"})
        assert validate_transaction(tx) == ValidationResult(False, "Invalid signature")

    def test_bad_signature_reported(self) -> None:
        wallet = Wallet.create()
        tx = wallet.create_transaction(RECIPIENT, "5", "1", nonce=0)
        tampered = tx.model_copy(update={"amount": "6"})
        assert validate_transaction(tampered) == ValidationResult(False, "Invalid signature")

    def test_accepts_wire_mapping(self) -> None:
        wallet = Wallet.create()
        tx = wallet.create_transaction(RECIPIENT, "5", "1", nonce=0, timestamp=TIMESTAMP)
        wire = dict(tx.to_wire(), timestamp=TIMESTAMP)
        assert validate_transaction(wire).valid is True

    def test_accepts_camel_case_public_key(self) -> None:
        wallet = Wallet.create()
        tx = wallet.create_transaction(RECIPIENT, "5", "1", nonce=0, timestamp=TIMESTAMP)
        data = tx.model_dump(by_alias=True)
        data["publicKey"] = data.pop("public_key")
        assert validate_transaction(data).valid is True

    @pytest.mark.parametrize("payload", [None, {}, {"from": SENDER}, "garbage", 42])
    def test_malformed_input_never_raises(self, payload) -> None:
        result = validate_transaction(payload)
        assert result.valid is False
        assert result.error.startswith("Malformed transaction")


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


class TestTransactionBuilder:
    def test_chaining_returns_same_builder(self) -> None:
        builder = TransactionBuilder()
        assert builder.set_recipient(RECIPIENT) is builder
        assert builder.set_amount(1) is builder
        assert builder.set_fee_wei("10") is builder
        assert builder.set_nonce(0) is builder
        assert builder.set_timestamp(TIMESTAMP) is builder

    def test_build_full(self) -> None:
        params = (
            TransactionBuilder()
            .set_recipient("0x" + "BB" * 32)
            .set_amount(1.5)
            .set_fee(0.001)
            .set_nonce(7)
            .set_timestamp(TIMESTAMP)
            .build()
        )
        assert params == TransactionParams(
            to=RECIPIENT,
            amount="1500000000000000000",
            fee="1000000000000000",
            nonce=7,
            timestamp=TIMESTAMP,
        )

    def test_timestamp_optional(self) -> None:
        params = (
            TransactionBuilder()
            .set_recipient(RECIPIENT)
            .set_amount_wei(10**30)
            .set_fee_wei("0")
            .set_nonce(0)
            .build()
        )
        assert params.timestamp is None
        assert params.amount == str(10**30)
        assert params.fee == "0"

    def test_invalid_recipient_fails_immediately(self) -> None:
        with pytest.raises(ValidationError, match="recipient"):
            TransactionBuilder().set_recipient("not-an-address")

    def test_newline_terminated_recipient_rejected(self) -> None:
        with pytest.raises(ValidationError, match="recipient"):
            TransactionBuilder().set_recipient("bb" * 31 + "b\n")

    @pytest.mark.parametrize("wei", ["-1", "1.5", 1.5, "", -3, "1\n", " 1"])
    def test_invalid_wei_amount(self, wei) -> None:
        with pytest.raises(FormatError):
            TransactionBuilder().set_amount_wei(wei)

    def test_negative_display_amount(self) -> None:
        with pytest.raises(FormatError):
            TransactionBuilder().set_fee(-0.5)

    @pytest.mark.parametrize("nonce", [-1, 2**64, True, "1"])
    def test_invalid_nonce(self, nonce) -> None:
        with pytest.raises(ValidationError):
            TransactionBuilder().set_nonce(nonce)

    @pytest.mark.parametrize("value", [0, 2**64 - 1])
    def test_check_uint64_bounds(self, value: int) -> None:
        assert check_uint64(value, "nonce") == value

    @pytest.mark.parametrize(
        "steps, missing",
        [
            ([], "recipient"),
            ([("set_recipient", RECIPIENT)], "amount"),
            ([("set_recipient", RECIPIENT), ("set_amount_wei", "1")], "fee"),
            ([("set_recipient", RECIPIENT), ("set_amount_wei", "1"), ("set_fee_wei", "1")], "nonce"),
        ],
    )
    def test_build_reports_missing_field(self, steps, missing: str) -> None:
        builder = TransactionBuilder()
        for name, arg in steps:
            getattr(builder, name)(arg)
        with pytest.raises(IncompleteTransactionError) as info:
            builder.build()
        assert info.value.field == missing

    def test_zero_amount_counts_as_set(self) -> None:
        params = (
            TransactionBuilder()
            .set_recipient(RECIPIENT)
            .set_amount_wei("0")
            .set_fee_wei("0")
            .set_nonce(0)
            .build()
        )
        assert params.amount == "0"

    def test_built_params_are_signed_by_wallet(self) -> None:
        wallet = Wallet.create()
        params = (
            TransactionBuilder()
            .set_recipient(RECIPIENT)
            .set_amount(2)
            .set_fee(0.01)
            .set_nonce(3)
            .set_timestamp(TIMESTAMP)
            .build()
        )
        tx = wallet.create_transaction_from_params(params)
        assert tx.amount == "2000000000000000000"
        assert tx.timestamp == TIMESTAMP
        assert validate_transaction(tx).valid is True
