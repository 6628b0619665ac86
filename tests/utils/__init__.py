"""Helpers shared by the treewatch test suite."""


def delivered(observer):
    """All records a Mock observer received, flattened across calls."""
    return [record for call in observer.call_args_list for record in call.args[0]]


def paths_of(records):
    return [record.dotted_path for record in records]
