import pytest

from turborabbit.topology import Exchange, ExchangeBinding, Queue, QueueBinding


def test_exchange_from_full_dict():
    exchange = Exchange.from_dict(
        {
            "Name": "MyTopicExchange",
            "Type": "topic",
            "PassiveDeclare": False,
            "Durable": True,
            "AutoDelete": False,
            "InternalOnly": True,
            "NoWait": True,
            "Args": {"alternate-exchange": "other"},
        }
    )
    assert exchange.name == "MyTopicExchange"
    assert exchange.type == "topic"
    assert exchange.durable is True
    assert exchange.internal_only is True
    assert exchange.no_wait is True
    assert exchange.passive_declare is False
    assert exchange.args == {"alternate-exchange": "other"}


def test_exchange_defaults_from_empty_dict():
    assert Exchange.from_dict({}) == Exchange()
    assert Exchange.from_dict({}).args is None


def test_keys_match_case_insensitively():
    exchange = Exchange.from_dict({"name": "lower", "DURABLE": True})
    assert exchange.name == "lower"
    assert exchange.durable is True


def test_null_value_keeps_default():
    queue = Queue.from_dict({"Name": None, "Durable": None})
    assert queue.name == ""
    assert queue.durable is False


def test_wrong_type_raises():
    with pytest.raises(TypeError):
        Exchange.from_dict({"Durable": "yes"})
    with pytest.raises(TypeError):
        Queue.from_dict({"Args": ["not", "a", "map"]})


def test_args_are_copied():
    args = {"x-max-length": 10}
    queue = Queue.from_dict({"Name": "q", "Args": args})
    args["x-max-length"] = 20
    assert queue.args == {"x-max-length": 10}


def test_queue_from_dict():
    queue = Queue.from_dict(
        {
            "Name": "QueueAttachedToExch01",
            "Durable": True,
            "Exclusive": True,
            "Type": "quorum",
        }
    )
    assert queue.name == "QueueAttachedToExch01"
    assert queue.durable is True
    assert queue.exclusive is True
    assert queue.type == "quorum"
    assert queue.auto_delete is False


def test_queue_binding_from_dict():
    binding = QueueBinding.from_dict(
        {
            "QueueName": "QueueAttachedToExch01",
            "ExchangeName": "MyTopicExchange",
            "RoutingKey": "RoutingKey1",
            "NoWait": True,
        }
    )
    assert binding == QueueBinding(
        queue_name="QueueAttachedToExch01",
        exchange_name="MyTopicExchange",
        routing_key="RoutingKey1",
        no_wait=True,
    )


def test_exchange_binding_from_dict():
    binding = ExchangeBinding.from_dict(
        {
            "ExchangeName": "MyFanoutExchange",
            "ParentExchangeName": "MyTopicExchange",
            "RoutingKey": "RoutingKey2",
            "Args": {"k": "v"},
        }
    )
    assert binding.exchange_name == "MyFanoutExchange"
    assert binding.parent_exchange_name == "MyTopicExchange"
    assert binding.routing_key == "RoutingKey2"
    assert binding.no_wait is False
    assert binding.args == {"k": "v"}