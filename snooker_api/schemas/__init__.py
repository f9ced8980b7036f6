# snooker_api/schemas/__init__.py
from .analytics import CustomerAnalytics, Dashboard, FinancialReport, PaymentSummary, ReportPeriod
from .auth import (
    AuthSession, AuthSessionList, EmailRequest, ExtendSessionRequest, ExtendSessionResponse,
    LoginRequest, LogoutSessionRequest, Me, MessageResponse, OTPResend, OTPSentResponse,
    OTPVerify, PasswordReset, SessionInfo, SignupResponse,
)
from .game_session import (
    BulkAction, BulkActionResponse, ConfirmPayment, EndSession, GameSession, ItemAdd,
    MySessions, SessionStart, SessionUpdate, TableHistory,
)
from .product import (
    InventoryStats, Product, ProductCreate, ProductList, ProductSearchResult, ProductUpdate,
    StockUpdate, StockUpdateResult,
)
from .sale import Sale, SaleCreate, SaleHistory
from .snooker_house import SnookerHouse, SnookerHouseCreate, SnookerHouseList, SnookerHouseStats, SnookerHouseUpdate
from .table import HouseTables, MyTables, Table, TableCreate, TableStats, TableUpdate
from .token import LoginResponse, Token, TokenPayload
from .user import AccountDelete, PasswordChange, User, UserCreate, UserUpdate
