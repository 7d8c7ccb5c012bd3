"""
Event Creator Smart Contract

An on-chain event registry. Organizers create events with a registration
deadline; participants join by paying an exact registration fee, and the
organizer withdraws the collected fees once registration is closed.

Features:
- Create events with a future deadline (organizer pays the box storage)
- Open / close registration (auto-closes when the event is full)
- Paid registration with exact-fee enforcement
- One-time withdrawal of collected fees by the organizer
- ARC-28 notifications for every state change

Algorand Primitives Used:
- AVM Application (smart contract)
- Atomic Groups (payment + app call)
- Inner Transactions (fee payout to the organizer, fee pooled)
- Boxes (event records, names, participant lists)
"""

from algopy import (
    ARC4Contract,
    Account,
    Bytes,
    Global,
    GlobalState,
    TransactionType,
    Txn,
    UInt64,
    arc4,
    gtxn,
    itxn,
    op,
    subroutine,
    urange,
)


# Defaults applied to every new event
DEFAULT_MAX_PARTICIPANTS = 10
DEFAULT_REGISTRATION_FEE = 50_000  # 0.05 ALGO in microALGOs

# Event record layout: organizer (32) + deadline (8) + is_open (8) +
# max_participants (8) + registration_fee (8) + balance (8) + participant_count (8)
ORGANIZER_OFFSET = 0
DEADLINE_OFFSET = 32
IS_OPEN_OFFSET = 40
MAX_PARTICIPANTS_OFFSET = 48
REGISTRATION_FEE_OFFSET = 56
BALANCE_OFFSET = 64
PARTICIPANT_COUNT_OFFSET = 72
EVENT_RECORD_SIZE = 80

ADDRESS_SIZE = 32

# Box minimum balance: 2500 + 400 * (key length + value length) microALGOs
BOX_FLAT_MIN_BALANCE = 2_500
BOX_BYTE_MIN_BALANCE = 400


class EventCreated(arc4.Struct):
    event_id: arc4.UInt64
    organizer: arc4.Address
    deadline: arc4.UInt64


class RegistrationOpened(arc4.Struct):
    event_id: arc4.UInt64
    caller: arc4.Address


class RegistrationClosed(arc4.Struct):
    event_id: arc4.UInt64
    caller: arc4.Address


class ParticipantRegistered(arc4.Struct):
    event_id: arc4.UInt64
    participant: arc4.Address
    amount: arc4.UInt64


class FundsWithdrawn(arc4.Struct):
    event_id: arc4.UInt64
    organizer: arc4.Address
    amount: arc4.UInt64


@subroutine
def event_key(event_id: UInt64) -> Bytes:
    return Bytes(b"event_") + op.itob(event_id)


@subroutine
def name_key(event_id: UInt64) -> Bytes:
    return Bytes(b"name_") + op.itob(event_id)


@subroutine
def participants_key(event_id: UInt64) -> Bytes:
    return Bytes(b"parts_") + op.itob(event_id)


@subroutine
def box_cost(key_size: UInt64, value_size: UInt64) -> UInt64:
    return UInt64(BOX_FLAT_MIN_BALANCE) + UInt64(BOX_BYTE_MIN_BALANCE) * (key_size + value_size)


@subroutine
def event_storage_cost(name_size: UInt64) -> UInt64:
    """Minimum balance locked by one event: record, name and full participant boxes."""
    return (
        box_cost(event_key(UInt64(0)).length, UInt64(EVENT_RECORD_SIZE))
        + box_cost(name_key(UInt64(0)).length, name_size)
        + box_cost(
            participants_key(UInt64(0)).length,
            UInt64(DEFAULT_MAX_PARTICIPANTS * ADDRESS_SIZE),
        )
    )


@subroutine
def load_event(event_id: UInt64) -> Bytes:
    event_data, event_exists = op.Box.get(event_key(event_id))
    assert event_exists, "Event does not exist"
    return event_data


@subroutine
def has_registered(event_id: UInt64, account: Account, participant_count: UInt64) -> bool:
    """Linear scan of the filled part of the participant box."""
    participants_box = participants_key(event_id)
    for index in urange(participant_count):
        if op.Box.extract(participants_box, index * ADDRESS_SIZE, ADDRESS_SIZE) == account.bytes:
            return True
    return False


class EventCreator(ARC4Contract):
    """
    Registry of paid-registration events.

    State Schema:
    - Global State:
        - event_count: Number of events created (also the next event ID)

    - Boxes:
        - event_{id}: Fixed 80-byte event record (see layout above)
        - name_{id}: ARC-4 encoded event name
        - parts_{id}: Participant slots, 32 bytes each, sized for full capacity
          at creation and filled in registration order

    Box storage is paid by the organizer when the event is created, so the
    app account only ever holds its own base minimum balance, the storage
    deposits and the escrowed registration fees.
    """

    def __init__(self) -> None:
        self.event_count = GlobalState(UInt64(0))

    @arc4.abimethod(create="require")
    def create(self) -> None:
        """
        Create the event registry.
        """

    @arc4.abimethod
    def create_event(
        self,
        name: arc4.String,
        deadline: arc4.UInt64,
        storage_payment: gtxn.PaymentTransaction,
    ) -> arc4.UInt64:
        """
        Create a new event with registration open.

        The caller becomes the organizer. Capacity and registration fee
        take the contract defaults. Must be grouped with a payment to the
        application account covering the event's box storage
        (see get_event_storage_cost).

        Args:
            name: Event name
            deadline: Registration deadline as Unix timestamp (exclusive)
            storage_payment: Box storage deposit from the organizer

        Returns:
            Event ID
        """
        assert deadline.as_uint64() > Global.latest_timestamp, "Deadline must be in the future."

        assert storage_payment.receiver == Global.current_application_address, (
            "Payment must be sent to the application"
        )
        assert storage_payment.sender == Txn.sender, "Payment must come from the organizer"
        assert storage_payment.amount >= event_storage_cost(name.bytes.length), (
            "Payment must cover event storage"
        )

        event_id = self.event_count.value
        self.event_count.value = event_id + UInt64(1)

        event_data = (
            Txn.sender.bytes +                                   # Organizer
            op.itob(deadline.as_uint64()) +                      # Deadline
            op.itob(UInt64(1)) +                                 # Open
            op.itob(UInt64(DEFAULT_MAX_PARTICIPANTS)) +          # Capacity
            op.itob(UInt64(DEFAULT_REGISTRATION_FEE)) +          # Fee
            op.itob(UInt64(0)) +                                 # Balance
            op.itob(UInt64(0))                                   # Participant count
        )
        op.Box.put(event_key(event_id), event_data)
        op.Box.put(name_key(event_id), name.bytes)
        op.Box.create(
            participants_key(event_id),
            UInt64(DEFAULT_MAX_PARTICIPANTS * ADDRESS_SIZE),
        )

        arc4.emit(EventCreated(arc4.UInt64(event_id), arc4.Address(Txn.sender), deadline))

        return arc4.UInt64(event_id)

    @arc4.abimethod
    def get_event_storage_cost(self, name: arc4.String) -> arc4.UInt64:
        """
        Get the storage deposit create_event requires for a given name.

        Args:
            name: Event name

        Returns:
            Deposit in microALGOs
        """
        return arc4.UInt64(event_storage_cost(name.bytes.length))

    @arc4.abimethod
    def open_registration(
        self,
        event_id: arc4.UInt64,
    ) -> None:
        """
        Re-open registration for an event.

        Args:
            event_id: ID of the event
        """
        event_data = load_event(event_id.as_uint64())

        is_open = op.btoi(op.extract(event_data, IS_OPEN_OFFSET, 8))
        deadline = op.btoi(op.extract(event_data, DEADLINE_OFFSET, 8))
        max_participants = op.btoi(op.extract(event_data, MAX_PARTICIPANTS_OFFSET, 8))
        participant_count = op.btoi(op.extract(event_data, PARTICIPANT_COUNT_OFFSET, 8))

        assert is_open == UInt64(0), "Registration is already open."
        assert Global.latest_timestamp < deadline, "Cannot reopen: Deadline has passed."
        assert participant_count < max_participants, "Cannot reopen: Max participants reached."

        op.Box.put(
            event_key(event_id.as_uint64()),
            op.replace(event_data, IS_OPEN_OFFSET, op.itob(UInt64(1))),
        )

        arc4.emit(RegistrationOpened(event_id, arc4.Address(Txn.sender)))

    @arc4.abimethod
    def close_registration(
        self,
        event_id: arc4.UInt64,
    ) -> None:
        """
        Close registration for an event.

        Args:
            event_id: ID of the event
        """
        event_data = load_event(event_id.as_uint64())

        is_open = op.btoi(op.extract(event_data, IS_OPEN_OFFSET, 8))
        assert is_open == UInt64(1), "Registration is already closed."

        op.Box.put(
            event_key(event_id.as_uint64()),
            op.replace(event_data, IS_OPEN_OFFSET, op.itob(UInt64(0))),
        )

        arc4.emit(RegistrationClosed(event_id, arc4.Address(Txn.sender)))

    @arc4.abimethod
    def register(
        self,
        event_id: arc4.UInt64,
        payment: gtxn.PaymentTransaction,
    ) -> None:
        """
        Register the caller for an event.
        Must be grouped with a payment of exactly the registration fee
        to the application account.

        Registration closes automatically once the event is full.

        Args:
            event_id: ID of the event
            payment: Registration fee payment from the caller
        """
        event_data = load_event(event_id.as_uint64())

        organizer = op.extract(event_data, ORGANIZER_OFFSET, ADDRESS_SIZE)
        deadline = op.btoi(op.extract(event_data, DEADLINE_OFFSET, 8))
        is_open = op.btoi(op.extract(event_data, IS_OPEN_OFFSET, 8))
        max_participants = op.btoi(op.extract(event_data, MAX_PARTICIPANTS_OFFSET, 8))
        registration_fee = op.btoi(op.extract(event_data, REGISTRATION_FEE_OFFSET, 8))
        balance = op.btoi(op.extract(event_data, BALANCE_OFFSET, 8))
        participant_count = op.btoi(op.extract(event_data, PARTICIPANT_COUNT_OFFSET, 8))

        assert Txn.sender.bytes != organizer, "Organizer cannot register for their own event."
        assert is_open == UInt64(1), "Registration is closed."
        assert Global.latest_timestamp < deadline, "Registration deadline has passed."
        assert not has_registered(event_id.as_uint64(), Txn.sender, participant_count), (
            "Address has already registered for this event."
        )

        # Verify the grouped payment
        assert payment.receiver == Global.current_application_address, (
            "Payment must be sent to the application"
        )
        assert payment.sender == Txn.sender, "Payment must come from the registrant"
        assert payment.amount >= registration_fee, "TooLow: payment is below the registration fee"
        assert payment.amount <= registration_fee, "TooMuch: payment is above the registration fee"

        # Fill the next participant slot
        op.Box.replace(
            participants_key(event_id.as_uint64()),
            participant_count * ADDRESS_SIZE,
            Txn.sender.bytes,
        )

        participant_count = participant_count + UInt64(1)
        updated_event = op.replace(event_data, BALANCE_OFFSET, op.itob(balance + payment.amount))
        updated_event = op.replace(updated_event, PARTICIPANT_COUNT_OFFSET, op.itob(participant_count))

        event_full = participant_count >= max_participants
        if event_full:
            updated_event = op.replace(updated_event, IS_OPEN_OFFSET, op.itob(UInt64(0)))

        op.Box.put(event_key(event_id.as_uint64()), updated_event)

        arc4.emit(
            ParticipantRegistered(event_id, arc4.Address(Txn.sender), arc4.UInt64(payment.amount))
        )
        if event_full:
            arc4.emit(RegistrationClosed(event_id, arc4.Address(Txn.sender)))

    @arc4.abimethod
    def withdraw(
        self,
        event_id: arc4.UInt64,
    ) -> None:
        """
        Withdraw all collected registration fees to the organizer.
        Only the organizer can withdraw, and only while registration is closed.
        The organizer covers the payout fee through fee pooling.

        Args:
            event_id: ID of the event
        """
        event_data = load_event(event_id.as_uint64())

        organizer = op.extract(event_data, ORGANIZER_OFFSET, ADDRESS_SIZE)
        is_open = op.btoi(op.extract(event_data, IS_OPEN_OFFSET, 8))
        amount = op.btoi(op.extract(event_data, BALANCE_OFFSET, 8))

        assert Txn.sender.bytes == organizer, "Only the organizer can withdraw."
        assert is_open == UInt64(0), "Registration must be closed before withdrawal."
        assert amount > UInt64(0), "No funds available to withdraw."

        # Zero the balance before the payout is submitted
        op.Box.put(
            event_key(event_id.as_uint64()),
            op.replace(event_data, BALANCE_OFFSET, op.itob(UInt64(0))),
        )

        itxn.Payment(
            receiver=Txn.sender,
            amount=amount,
            fee=0,
        ).submit()

        arc4.emit(FundsWithdrawn(event_id, arc4.Address(Txn.sender), arc4.UInt64(amount)))

    @arc4.abimethod
    def get_participants(
        self,
        event_id: arc4.UInt64,
    ) -> arc4.DynamicArray[arc4.Address]:
        """
        Get the participants of an event in registration order.

        Args:
            event_id: ID of the event

        Returns:
            Participant addresses
        """
        event_data = load_event(event_id.as_uint64())
        participant_count = op.btoi(op.extract(event_data, PARTICIPANT_COUNT_OFFSET, 8))
        participants_box = participants_key(event_id.as_uint64())

        participants = arc4.DynamicArray[arc4.Address]()
        for index in urange(participant_count):
            participants.append(
                arc4.Address(op.Box.extract(participants_box, index * ADDRESS_SIZE, ADDRESS_SIZE))
            )
        return participants

    @arc4.abimethod
    def get_event(
        self,
        event_id: arc4.UInt64,
    ) -> arc4.Tuple[
        arc4.Address,
        arc4.String,
        arc4.UInt64,
        arc4.Bool,
        arc4.UInt64,
        arc4.UInt64,
        arc4.UInt64,
        arc4.UInt64,
    ]:
        """
        Get event details.

        Args:
            event_id: ID of the event

        Returns:
            Tuple of (organizer, name, deadline, is_open, max_participants,
            registration_fee, balance, participant_count)
        """
        event_data = load_event(event_id.as_uint64())
        name_data, _name_exists = op.Box.get(name_key(event_id.as_uint64()))

        return arc4.Tuple((
            arc4.Address(op.extract(event_data, ORGANIZER_OFFSET, ADDRESS_SIZE)),
            arc4.String.from_bytes(name_data),
            arc4.UInt64(op.btoi(op.extract(event_data, DEADLINE_OFFSET, 8))),
            arc4.Bool(op.btoi(op.extract(event_data, IS_OPEN_OFFSET, 8)) == UInt64(1)),
            arc4.UInt64(op.btoi(op.extract(event_data, MAX_PARTICIPANTS_OFFSET, 8))),
            arc4.UInt64(op.btoi(op.extract(event_data, REGISTRATION_FEE_OFFSET, 8))),
            arc4.UInt64(op.btoi(op.extract(event_data, BALANCE_OFFSET, 8))),
            arc4.UInt64(op.btoi(op.extract(event_data, PARTICIPANT_COUNT_OFFSET, 8))),
        ))

    @arc4.abimethod
    def get_event_count(self) -> arc4.UInt64:
        """
        Get total number of events created.

        Returns:
            Event count
        """
        return arc4.UInt64(self.event_count.value)

    @arc4.abimethod
    def is_registered(
        self,
        event_id: arc4.UInt64,
        participant: arc4.Address,
    ) -> arc4.Bool:
        """
        Check whether an address is registered for an event.

        Args:
            event_id: ID of the event
            participant: Address to check

        Returns:
            True if the address is in the participant list
        """
        event_data = load_event(event_id.as_uint64())
        participant_count = op.btoi(op.extract(event_data, PARTICIPANT_COUNT_OFFSET, 8))
        return arc4.Bool(
            has_registered(event_id.as_uint64(), participant.native, participant_count)
        )

    @arc4.baremethod
    def fallback(self) -> None:
        """
        Reject bare NoOp calls, including ones used to push ALGO at the app.
        """
        if Txn.group_index > UInt64(0):
            previous = gtxn.Transaction(Txn.group_index - UInt64(1))
            assert previous.type != TransactionType.Payment, "This contract does not accept ALGO"
        assert Txn.num_app_args > UInt64(0), "Fallback Function"
