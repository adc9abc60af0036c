from config.api_key_manager import APIKeyManager
from config.settings import Settings


def test_register_splits_comma_separated_keys():
    manager = APIKeyManager()
    manager.register('RAPIDAPI', " key-one , key-two,, ")
    assert manager.key_count('RAPIDAPI') == 2
    assert manager.get('RAPIDAPI') == "key-one"


def test_empty_pool():
    manager = APIKeyManager()
    manager.register('OPENROUTER', None)
    assert manager.get('OPENROUTER') is None
    assert not manager.has_key('OPENROUTER')
    assert manager.get('UNKNOWN') is None


def test_rotation_is_per_pool():
    manager = APIKeyManager()
    manager.register('RAPIDAPI', "r1,r2")
    manager.register('ALPHAVANTAGE', "a1,a2")

    assert manager.rotate('RAPIDAPI')
    assert manager.get('RAPIDAPI') == "r2"
    assert manager.get('ALPHAVANTAGE') == "a1"


def test_stale_rejection_does_not_skip_a_key():
    manager = APIKeyManager()
    manager.register('RAPIDAPI', "r1,r2,r3")

    manager.rotate('RAPIDAPI', rejected="r1")
    # A second thread reporting the same refused key
    manager.rotate('RAPIDAPI', rejected="r1")
    assert manager.get('RAPIDAPI') == "r2"


def test_single_key_cannot_rotate():
    manager = APIKeyManager()
    manager.register('ALPHAVANTAGE', "only")
    assert not manager.rotate('ALPHAVANTAGE')
    assert manager.get('ALPHAVANTAGE') == "only"


def test_mask_api_key():
    assert Settings.mask_api_key("abcd1234efgh5678") == "abcd...5678"
    assert Settings.mask_api_key("") == "****"
