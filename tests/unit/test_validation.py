"""
Unit tests for job input validation.
"""

import json

import pytest

from triggerx.errors import ValidationError
from triggerx.types import (
    ArgType,
    ConditionBasedJobInput,
    CustomScriptJobInput,
    EventBasedJobInput,
    SafeTransaction,
    TimeBasedJobInput,
    WalletMode,
)
from triggerx.validation import find_function, function_signature, validate_job_input

from tests.conftest import COUNTER_ABI, SAFE, TARGET, TOKEN

SCRIPT_URL = "https://ipfs.io/ipfs/bafkreiscript"


def time_job(**overrides):
    fields = dict(
        job_title="counter",
        time_frame=36,
        timezone="UTC",
        chain_id="421614",
        schedule_type="interval",
        time_interval=33,
        target_contract_address=TARGET,
        target_function="increment(uint256)",
        abi=COUNTER_ABI,
        arguments=["3"],
    )
    fields.update(overrides)
    return TimeBasedJobInput(**fields)


def assert_field(job, field):
    with pytest.raises(ValidationError) as excinfo:
        validate_job_input(job)
    assert excinfo.value.field == field, excinfo.value.message
    assert excinfo.value.details["field"] == field
    return excinfo.value


class TestCommonFields:
    """Rules shared by every job kind."""

    def test_valid_time_job_passes(self):
        validate_job_input(time_job())

    def test_blank_title(self):
        assert_field(time_job(job_title="  "), "job_title")

    @pytest.mark.parametrize("time_frame", [0, -5])
    def test_non_positive_time_frame(self, time_frame):
        assert_field(time_job(time_frame=time_frame), "time_frame")

    def test_missing_timezone(self):
        assert_field(time_job(timezone=""), "timezone")

    def test_missing_chain_id(self):
        assert_field(time_job(chain_id=""), "chain_id")


class TestTimeBased:
    """Schedule selection for time-based jobs."""

    def test_interval_larger_than_time_frame_rejected(self):
        error = assert_field(time_job(time_frame=30, time_interval=33), "time_interval")
        assert "exceed" in error.message

    def test_interval_must_be_positive(self):
        assert_field(time_job(time_interval=0), "time_interval")

    def test_cron_requires_expression(self):
        assert_field(time_job(schedule_type="cron", time_interval=None), "cron_expression")

    def test_cron_with_expression_passes(self):
        validate_job_input(
            time_job(schedule_type="cron", time_interval=None, cron_expression="*/5 * * * *")
        )

    def test_specific_requires_schedule(self):
        assert_field(time_job(schedule_type="specific"), "specific_schedule")


class TestEventBased:
    """Trigger fields for event-based jobs."""

    def make(self, **overrides):
        fields = dict(
            job_title="on transfer",
            time_frame=3600,
            timezone="UTC",
            chain_id="421614",
            trigger_chain_id="421614",
            trigger_contract_address=TOKEN,
            trigger_event="Transfer(address,address,uint256)",
            target_contract_address=TARGET,
            target_function="increment(uint256)",
            abi=COUNTER_ABI,
            arguments=["1"],
        )
        fields.update(overrides)
        return EventBasedJobInput(**fields)

    def test_valid_event_job_passes(self):
        validate_job_input(self.make())

    def test_invalid_trigger_address(self):
        assert_field(self.make(trigger_contract_address="0x1234"), "trigger_contract_address")

    def test_missing_trigger_event(self):
        assert_field(self.make(trigger_event=""), "trigger_event")

    def test_missing_trigger_chain(self):
        assert_field(self.make(trigger_chain_id=""), "trigger_chain_id")


class TestConditionBased:
    """Condition bounds and value source."""

    def make(self, **overrides):
        fields = dict(
            job_title="price watch",
            time_frame=3600,
            timezone="UTC",
            chain_id="421614",
            condition_type="greater_than",
            upper_limit=2000.0,
            value_source_type="api",
            value_source_url="https://api.example.com/price",
            target_contract_address=TARGET,
            target_function="increment(uint256)",
            abi=COUNTER_ABI,
            arguments=["1"],
        )
        fields.update(overrides)
        return ConditionBasedJobInput(**fields)

    def test_valid_condition_job_passes(self):
        validate_job_input(self.make())

    def test_between_requires_both_limits(self):
        assert_field(self.make(condition_type="between", lower_limit=None), "upper_limit")

    def test_between_with_both_limits_passes(self):
        validate_job_input(self.make(condition_type="between", lower_limit=1000.0))

    def test_other_conditions_require_upper_limit(self):
        assert_field(self.make(upper_limit=None), "upper_limit")

    def test_source_url_must_be_valid(self):
        assert_field(self.make(value_source_url="not a url"), "value_source_url")


class TestRegularWallet:
    """Target contract and argument checks in regular wallet mode."""

    def test_missing_target_address(self):
        assert_field(time_job(target_contract_address=None), "target_contract_address")

    def test_invalid_target_address(self):
        assert_field(time_job(target_contract_address="0xnothex"), "target_contract_address")

    def test_missing_abi(self):
        assert_field(time_job(abi=""), "abi")

    def test_abi_must_be_json_array(self):
        assert_field(time_job(abi="{not json"), "abi")

    def test_unknown_function(self):
        assert_field(time_job(target_function="decrement(uint256)"), "target_function")

    def test_argument_count_must_match_arity(self):
        error = assert_field(time_job(arguments=["1", "2"]), "arguments")
        assert error.details["expected"] == 1
        assert error.details["received"] == 2

    def test_missing_arguments(self):
        assert_field(time_job(arguments=None), "arguments")

    def test_blank_argument(self):
        assert_field(time_job(arguments=[" "]), "arguments")

    def test_dynamic_job_without_script_url_fails_on_script_field(self):
        job = time_job(arg_type=ArgType.DYNAMIC, arguments=None)
        assert_field(job, "dynamic_arguments_script_url")

    def test_dynamic_job_with_static_arguments_rejected(self):
        job = time_job(arg_type="dynamic", dynamic_arguments_script_url=SCRIPT_URL)
        assert_field(job, "arguments")

    def test_dynamic_job_with_script_url_passes(self):
        job = time_job(arg_type=2, arguments=None, dynamic_arguments_script_url=SCRIPT_URL)
        validate_job_input(job)

    def test_static_job_with_script_url_rejected(self):
        job = time_job(dynamic_arguments_script_url=SCRIPT_URL)
        assert_field(job, "dynamic_arguments_script_url")


class TestSafeWallet:
    """Safe wallet mode: transactions or script, never both."""

    def make(self, **overrides):
        fields = dict(
            target_contract_address=None,
            target_function=None,
            abi=None,
            arguments=None,
            wallet_mode=WalletMode.SAFE,
            safe_address=SAFE,
            safe_transactions=[SafeTransaction(to=TOKEN, value="0", data="0x")],
        )
        fields.update(overrides)
        return time_job(**fields)

    def test_static_safe_job_passes_without_target(self):
        validate_job_input(self.make())

    def test_safe_address_required(self):
        assert_field(self.make(safe_address=None), "safe_address")

    def test_static_safe_job_requires_transactions(self):
        assert_field(self.make(safe_transactions=[]), "safe_transactions")

    def test_dicts_are_coerced_to_safe_transactions(self):
        job = self.make(safe_transactions=[{"to": TOKEN, "value": "1", "data": "0xab"}])
        assert isinstance(job.safe_transactions[0], SafeTransaction)
        validate_job_input(job)

    @pytest.mark.parametrize(
        "tx",
        [
            SafeTransaction(to="0x12", value="0", data="0x"),
            SafeTransaction(to=TOKEN, value="1.5", data="0x"),
            SafeTransaction(to=TOKEN, value="0", data="abcd"),
            SafeTransaction(to=TOKEN, value="0", data="0xabc"),
            SafeTransaction(to=TOKEN, value="0", data="0x", operation=2),
            SafeTransaction(to=TOKEN, value="\u00b2", data="0x"),
            SafeTransaction(to=TOKEN, value="0", data="0xab cd"),
        ],
    )
    def test_bad_transaction_rejected(self, tx):
        assert_field(self.make(safe_transactions=[tx]), "safe_transactions")

    def test_static_safe_job_with_script_url_rejected(self):
        job = self.make(dynamic_arguments_script_url=SCRIPT_URL)
        assert_field(job, "dynamic_arguments_script_url")

    def test_dynamic_safe_job_with_transactions_rejected(self):
        job = self.make(arg_type="dynamic", dynamic_arguments_script_url=SCRIPT_URL)
        assert_field(job, "safe_transactions")

    def test_dynamic_safe_job_requires_script_url(self):
        job = self.make(arg_type="dynamic", safe_transactions=None)
        assert_field(job, "dynamic_arguments_script_url")

    def test_dynamic_safe_job_passes(self):
        job = self.make(
            arg_type="dynamic", safe_transactions=None, dynamic_arguments_script_url=SCRIPT_URL
        )
        validate_job_input(job)


class TestCustomScript:
    """Custom script jobs are always dynamic and need a language."""

    def make(self, **overrides):
        fields = dict(
            job_title="custom",
            time_frame=300,
            timezone="UTC",
            chain_id="421614",
            time_interval=37,
            language="ts",
            dynamic_arguments_script_url=SCRIPT_URL,
        )
        fields.update(overrides)
        return CustomScriptJobInput(**fields)

    def test_forced_dynamic(self):
        assert self.make(arg_type="static").arg_type == ArgType.DYNAMIC

    def test_valid_custom_job_passes_without_target(self):
        validate_job_input(self.make())

    def test_language_required(self):
        assert_field(self.make(language=""), "language")

    def test_script_url_required(self):
        assert_field(self.make(dynamic_arguments_script_url=None), "dynamic_arguments_script_url")


class TestAbiHelpers:
    """Function lookup against a parsed ABI."""

    def test_tuple_parameters_are_expanded(self):
        item = {
            "type": "function",
            "name": "swap",
            "inputs": [
                {
                    "type": "tuple[]",
                    "components": [{"type": "address"}, {"type": "uint256"}],
                },
                {"type": "bytes"},
            ],
        }
        assert function_signature(item) == "swap((address,uint256)[],bytes)"

    def test_bare_name_matches_unique_function(self):
        abi = json.loads(COUNTER_ABI)
        assert find_function(abi, "increment")["name"] == "increment"

    def test_spaces_in_signature_ignored(self):
        abi = json.loads(COUNTER_ABI)
        assert find_function(abi, "increment( uint256 )") is not None
