from .tenancy import Tenant
from .auth import User, UserRoleAssignment, SessionToken
from .camps import Camp, Registration, RegistrationAddon, ShopOrder
from .royalties import RoyaltyInvoice, RoyaltyLineItem, RoyaltyInvoiceEvent
from .revenue import RevenueSnapshot
from .notifications import NotificationRequest

__all__ = [
    'Tenant',
    'User', 'UserRoleAssignment', 'SessionToken',
    'Camp', 'Registration', 'RegistrationAddon', 'ShopOrder',
    'RoyaltyInvoice', 'RoyaltyLineItem', 'RoyaltyInvoiceEvent',
    'RevenueSnapshot',
    'NotificationRequest',
]
