from briq_router.core.events import Deposit, EventLog, TokenSupportUpdated


def test_emit_stamps_emitter_and_preserves_order():
    log = EventLog(emitter="0xLedger")

    log.emit(TokenSupportUpdated(token="0xToken", supported=True))
    log.emit(Deposit(user="0xUser", token="0xToken", amount=5, emitter="0xOther"))

    assert len(log) == 2
    first, second = list(log)
    assert first.emitter == "0xLedger"
    assert second.emitter == "0xOther"
    assert log.last() is second
    assert log.of_type(Deposit) == [second]


def test_dump_is_json_ready():
    log = EventLog(emitter="0xLedger")
    log.emit(Deposit(user="0xUser", token="0xToken", amount=5))

    assert log.dump() == [
        {
            "emitter": "0xLedger",
            "type": "Deposit",
            "user": "0xUser",
            "token": "0xToken",
            "amount": 5,
        }
    ]


def test_empty_log():
    log = EventLog()
    assert log.last() is None
    assert log.dump() == []
