HOT_WALLET_LABEL = "Hot Wallet"
ARKM_EXPLORER_URL = "https://intel.arkm.com/explorer/address/{address}"

ROW_FIELDS = ['chain', 'address', 'arkm_url', 'label']


def _name_of(addr_info, field):
    value = addr_info.get(field)
    if isinstance(value, dict):
        return value.get('name')
    return None


def dedup_key(address, chain):
    return f"{address}@{chain}"


def extract_hot_wallet(addr_info, target, name):
    """Store ``addr_info`` in ``target`` if it is one of ``name``'s hot wallets.

    Returns the stored row, or None when the address does not qualify.
    """
    if not isinstance(addr_info, dict):
        return None
    if (
        _name_of(addr_info, 'arkhamEntity') != name or
        _name_of(addr_info, 'arkhamLabel') != HOT_WALLET_LABEL
    ):
        return None
    address = addr_info.get('address')
    if not address:
        return None
    chain = addr_info.get('chain')

    row = {
        'chain': chain,
        'address': address,
        'arkm_url': ARKM_EXPLORER_URL.format(address=address),
        'label': HOT_WALLET_LABEL,
    }
    target[dedup_key(address, chain)] = row
    return row


def sender_info(tx):
    """Owner info of the sending address, else the address info itself."""
    if not isinstance(tx, dict):
        return None
    return tx.get('fromAddressOwner') or tx.get('fromAddress')
