"""Operations that combine several tables."""
