"""
User and session store.

This module implements:
- User signup with a race-free uniqueness guard (conditional put)
- Login: password verification and session creation
- Token validation through the GSI1 reverse index
- Bulk revocation of every session a user holds
- Password change

A session item's existence is the only proof of authentication. Expiry is
delegated to the DynamoDB TTL sweeper through the ``ttl`` attribute; no
client-side expiry check is made.
"""

import uuid
from datetime import timedelta
from typing import Dict, Any, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from vehicle_fees import codec, keys
from vehicle_fees.errors import ConflictError, UnauthorizedError, ValidationError, StoreFailure
from vehicle_fees.passwords import PasswordHasher
from vehicle_fees.table import (
    TableStore,
    MAX_TRANSACTION_ITEMS,
    error_code,
    format_timestamp,
    store_failure,
)
from vehicle_fees.types import User, Session
from vehicle_fees.validation import validate_password, validate_user

SESSION_LIFETIME = timedelta(days=7)


class SessionStore(TableStore):
    """
    Store for user and session items under the ``USER#`` partition.
    """

    def __init__(self, client: Any, table_name: str, clock=None, hasher: Optional[Any] = None):
        """
        Args:
            client: Low-level boto3 DynamoDB client
            table_name: Name of the DynamoDB table
            clock: Returns the current aware datetime
            hasher: Object with ``hash(plain)`` and ``verify(plain, digest)``
        """
        super().__init__(client, table_name, clock)
        self.hasher = hasher or PasswordHasher()

    def create_user(self, user: User) -> None:
        """
        Create a new user.

        Raises:
            ValidationError: If username or password is missing or malformed
            ConflictError: If the username is already taken
            StoreFailure: If DynamoDB cannot be reached or rejects the write
        """
        errors = validate_user(user)
        if errors:
            raise ValidationError.from_errors(errors)

        item = codec.user_to_item(
            user,
            self.hasher.hash(user['password']),
            format_timestamp(self.now())
        )
        try:
            self.client.put_item(
                TableName=self.table_name,
                Item=item,
                ConditionExpression='attribute_not_exists(#pk) AND attribute_not_exists(#sk)',
                ExpressionAttributeNames={'#pk': keys.PK, '#sk': keys.SK}
            )
        except (ClientError, BotoCoreError) as e:
            if isinstance(e, ClientError) and error_code(e) == 'ConditionalCheckFailedException':
                raise ConflictError(
                    f"Username '{user['username']}' already exists",
                    {'username': user['username']}
                ) from e
            raise store_failure(e, 'PutItem') from e

    def authenticate(self, user: User) -> Session:
        """
        Verify credentials and open a new session.

        Raises:
            ValidationError: If credentials are missing
            UnauthorizedError: If the user does not exist or the password is wrong
        """
        errors = validate_user(user)
        if errors:
            raise ValidationError.from_errors(errors)

        stored = self._get_user(user['username'])
        if stored is None or not self.hasher.verify(user['password'], stored['password']):
            raise UnauthorizedError('Invalid username or password')

        return self.create_session(user['username'])

    def create_session(self, username: str) -> Session:
        """
        Create a session for a user; the session id is the bearer token.
        """
        now = self.now()
        expires = now + SESSION_LIFETIME
        session: Session = {
            'session_id': str(uuid.uuid4()),
            'username': username,
            'created_at': format_timestamp(now),
            'expires_at': format_timestamp(expires),
        }
        try:
            self.client.put_item(
                TableName=self.table_name,
                Item=codec.session_to_item(session, int(expires.timestamp()))
            )
        except (ClientError, BotoCoreError) as e:
            raise store_failure(e, 'PutItem') from e
        return session

    def resolve_user(self, token: Optional[str]) -> Optional[str]:
        """
        Return the username owning a session token, or None.

        A token that never existed and one the TTL sweeper reclaimed are
        indistinguishable here.
        """
        if not token:
            return None

        items = self.query_all(
            IndexName=keys.SESSION_INDEX,
            KeyConditionExpression='#pk = :pk',
            ExpressionAttributeNames={'#pk': 'GSI1PK'},
            ExpressionAttributeValues={':pk': {'S': keys.session_key(token)}}
        )
        if not items:
            return None
        return keys.username_from_key(items[0]['GSI1SK']['S'])

    def is_valid(self, token: Optional[str]) -> bool:
        return self.resolve_user(token) is not None

    def require_user(self, token: Optional[str]) -> str:
        """
        Resolve a token to its username or fail.

        Raises:
            UnauthorizedError: If the token resolves to no session
        """
        username = self.resolve_user(token)
        if username is None:
            raise UnauthorizedError()
        return username

    def revoke_all(self, token: Optional[str]) -> str:
        """
        Delete every session of the user owning ``token``.

        Deletes go out as TransactWriteItems chunks of up to 100 sessions, so
        revocation is atomic for any user holding 100 sessions or fewer. When
        a later chunk fails, earlier chunks stay deleted and the StoreFailure
        details report how many sessions were revoked and how many remain.

        Returns:
            The username whose sessions were revoked

        Raises:
            UnauthorizedError: If the token resolves to no user
            StoreFailure: If a chunk of deletes is rejected
        """
        username = self.require_user(token)
        sessions = self._list_session_keys(username)

        revoked = 0
        for start in range(0, len(sessions), MAX_TRANSACTION_ITEMS):
            chunk = sessions[start:start + MAX_TRANSACTION_ITEMS]
            try:
                self.transact([{'Delete': {'Key': key}} for key in chunk])
            except (ClientError, StoreFailure) as e:
                raise StoreFailure(
                    f"Revoked {revoked} of {len(sessions)} sessions for '{username}'",
                    {
                        'username': username,
                        'revoked': revoked,
                        'remaining': len(sessions) - revoked,
                        'errorCode': error_code(e) if isinstance(e, ClientError) else e.code,
                    }
                ) from e
            revoked += len(chunk)

        return username

    def change_password(self, token: Optional[str], old_password: str, new_password: str) -> None:
        """
        Replace a user's password digest after verifying the old password.

        Raises:
            UnauthorizedError: If the token is invalid or the old password is wrong
            ValidationError: If the new password is empty or too long
        """
        username = self.require_user(token)

        errors = validate_password('new_password', new_password)
        if errors:
            raise ValidationError.from_errors(errors)

        stored = self._get_user(username)
        if stored is None or not self.hasher.verify(old_password or '', stored['password']):
            raise UnauthorizedError('Old password does not match')

        try:
            self.client.update_item(
                TableName=self.table_name,
                Key=codec.item_key(keys.user_key(username)),
                UpdateExpression='SET #password = :password',
                ConditionExpression='attribute_exists(#pk)',
                ExpressionAttributeNames={'#password': 'password', '#pk': keys.PK},
                ExpressionAttributeValues={':password': {'S': self.hasher.hash(new_password)}}
            )
        except (ClientError, BotoCoreError) as e:
            if isinstance(e, ClientError) and error_code(e) == 'ConditionalCheckFailedException':
                raise UnauthorizedError('User no longer exists') from e
            raise store_failure(e, 'UpdateItem') from e

    def _get_user(self, username: str) -> Optional[User]:
        item = self.get_item(codec.item_key(keys.user_key(username)))
        if item is None:
            return None
        return codec.user_from_item(item)

    def _list_session_keys(self, username: str) -> List[Dict[str, Any]]:
        items = self.query_all(
            KeyConditionExpression='#pk = :pk AND begins_with(#sk, :prefix)',
            ExpressionAttributeNames={'#pk': keys.PK, '#sk': keys.SK},
            ExpressionAttributeValues={
                ':pk': {'S': keys.user_key(username)},
                ':prefix': {'S': keys.SESSION_PREFIX},
            }
        )
        return [{keys.PK: item[keys.PK], keys.SK: item[keys.SK]} for item in items]
