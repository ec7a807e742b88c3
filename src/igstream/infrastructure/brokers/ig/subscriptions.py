"""IGSubscriptionManager - Per-topic Lightstreamer subscriptions"""

import json
from collections.abc import Callable, Sequence
from dataclasses import dataclass, fields
from typing import Any

from lightstreamer.client import (
    LightstreamerClient,
    Subscription,
    SubscriptionListener,
)
from loguru import logger


@dataclass
class SubscriptionCallbacks:
    """Optional subscription event handlers

    item_update receives (name, data, update) where name is the item name
    without its topic prefix and data maps each field to its decoded value.
    """

    subscription: Callable[[], Any] | None = None
    unsubscription: Callable[[], Any] | None = None
    subscription_error: Callable[[int, str], Any] | None = None
    item_update: Callable[[str, dict[str, Any], Any], Any] | None = None


def decode_item_update(
    update: Any, field_names: Sequence[str]
) -> tuple[str, dict[str, Any]]:
    """Decode a raw Lightstreamer update

    Every field value arrives as a JSON encoded string. A field that fails
    to decode is left out of the mapping and logged; a field with no value
    maps to None.

    Args:
        update: Raw item update
        field_names: Subscribed fields, in output order

    Returns:
        (item name without prefix, field -> decoded value)
    """
    name = update.getItemName().split(":")[-1]
    data: dict[str, Any] = {}
    for field_name in field_names:
        raw = update.getValue(field_name)
        if raw is None:
            data[field_name] = None
            continue
        try:
            data[field_name] = json.loads(raw)
        except ValueError:
            logger.warning(
                f"Dropping undecodable field {field_name} for {name}: {raw!r}"
            )
    return name, data


class _SubscribedListener(SubscriptionListener):
    def __init__(self, handler: Callable[[], Any]) -> None:
        self._handler = handler

    def onSubscription(self) -> None:
        self._handler()


class _UnsubscribedListener(SubscriptionListener):
    def __init__(self, handler: Callable[[], Any]) -> None:
        self._handler = handler

    def onUnsubscription(self) -> None:
        self._handler()


class _SubscriptionErrorListener(SubscriptionListener):
    def __init__(self, handler: Callable[[int, str], Any]) -> None:
        self._handler = handler

    def onSubscriptionError(self, code: int, message: str) -> None:
        self._handler(code, message)


class _ItemUpdateListener(SubscriptionListener):
    def __init__(
        self,
        handler: Callable[[str, dict[str, Any], Any], Any],
        field_names: Sequence[str],
    ) -> None:
        self._handler = handler
        self._field_names = list(field_names)

    def onItemUpdate(self, update: Any) -> None:
        name, data = decode_item_update(update, self._field_names)
        self._handler(name, data, update)


class IGSubscriptionManager:
    """Creates subscriptions on a live Lightstreamer connection"""

    def __init__(
        self,
        subscription_factory: Callable[..., Subscription] = Subscription,
    ) -> None:
        self._subscription_factory = subscription_factory

    def _listener_for(
        self, name: str, handler: Callable[..., Any], field_names: list[str]
    ) -> SubscriptionListener:
        if name == "subscription":
            return _SubscribedListener(handler)
        if name == "unsubscription":
            return _UnsubscribedListener(handler)
        if name == "subscription_error":
            return _SubscriptionErrorListener(handler)
        return _ItemUpdateListener(handler, field_names)

    def subscribe(
        self,
        client: LightstreamerClient,
        mode: str,
        items: Sequence[str],
        field_names: Sequence[str],
        callbacks: SubscriptionCallbacks | None = None,
    ) -> Subscription:
        """Subscribe to items on a Lightstreamer connection

        The subscription is registered with the client only after all
        listeners are attached.

        Args:
            client: Connection returned by IGStreamingManager.open_stream()
            mode: Lightstreamer mode (MERGE, DISTINCT, ...)
            items: Item names including topic prefix
                (e.g., "MARKET:CS.D.EURUSD.CFD.IP")
            field_names: Fields to receive (e.g., ["BID", "OFFER"])
            callbacks: Optional subscription event handlers

        Returns:
            The registered subscription

        Raises:
            TypeError: If items or field_names is a single string
        """
        if isinstance(items, str) or isinstance(field_names, str):
            raise TypeError(
                "items and field_names must be sequences of names, not str"
            )

        item_list = list(items)
        field_list = list(field_names)
        subscription = self._subscription_factory(mode, item_list, field_list)

        callbacks = callbacks or SubscriptionCallbacks()
        for callback in fields(callbacks):
            handler = getattr(callbacks, callback.name)
            if handler is not None:
                subscription.addListener(
                    self._listener_for(callback.name, handler, field_list)
                )

        client.subscribe(subscription)
        logger.info(f"Subscribed {mode} {item_list} fields={field_list}")
        return subscription

    def unsubscribe(
        self, client: LightstreamerClient, subscription: Subscription
    ) -> None:
        """Remove a subscription from the connection"""
        client.unsubscribe(subscription)
        logger.info("Unsubscription requested")
