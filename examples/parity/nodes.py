"""Node functions for examples/graphs/parity.yaml."""


def add(data, callback=None):
    result = data + 1
    if callback:
        callback(f"add: {data} -> {result}")
    return result


def is_even(data, callback=None):
    result = data % 2 == 0
    if callback:
        callback(f"is_even: {data} -> {result}")
    return result


def parity(data):
    return data % 2 == 0


def doubled(data, callback=None):
    if callback:
        callback(f"doubling {data}")
    return data * 2


def negated(data, callback=None):
    if callback:
        callback(f"negating {data}")
    return -data
