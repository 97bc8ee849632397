import logging

from pollbot.logger import component, init_logging


def test_component_logger_name():
    assert component("bot").name == "pollbot.bot"


def test_component_is_child_of_package_logger():
    root = init_logging(logging.INFO)
    assert component("manager").parent is root


def test_init_logging_sets_level():
    root = init_logging(logging.WARNING)
    assert root.level == logging.WARNING
    init_logging(logging.DEBUG)
    assert root.level == logging.DEBUG


def test_init_logging_is_idempotent():
    root = init_logging()
    count = len(root.handlers)
    init_logging()
    init_logging()
    assert len(root.handlers) == count


def test_component_records_carry_name(caplog):
    with caplog.at_level(logging.INFO, logger="pollbot"):
        component("manager").info("hello")
    assert [r.name for r in caplog.records] == ["pollbot.manager"]
    assert caplog.records[0].getMessage() == "hello"