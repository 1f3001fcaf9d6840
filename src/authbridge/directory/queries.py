"""
authbridge.directory.queries

GraphQL documents sent to LLDAP's `/api/graphql` endpoint.
"""

GET_USER_FROM_ID = """
query GetUserFromId($user_id: String!) {
  user(userId: $user_id) {
    id
    email
    attributes {
      name
      value
    }
  }
}
"""

GET_USERS_FROM_TELEGRAM_ID = """
query GetUsersFromTelegramId($telegram_id: String!) {
  users(filters: {eq: {field: "telegram_id", value: $telegram_id}}) {
    id
  }
}
"""

CREATE_USER = """
mutation CreateUser($telegram_id: String!, $user_id: String!, $email: String!) {
  createUser(user: {
    id: $user_id
    email: $email
    attributes: {name: "telegram_id", value: $telegram_id}
  }) {
    uuid
  }
}
"""

ADD_USER_TO_GROUP = """
mutation AddUserToGroup($user_id: String!, $group_id: Int!) {
  addUserToGroup(userId: $user_id, groupId: $group_id) {
    ok
  }
}
"""
