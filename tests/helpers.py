from table_orders.models import Product, Table


async def seed(database, tables=(), products=()):
    """
    Insert tables and products directly, returning their ids.

    tables: (name, capacity, single_tab) tuples
    products: (name, price, stock) tuples
    """
    async with database.session() as session:
        table_rows = [Table(name=n, capacity=c, single_tab=s) for n, c, s in tables]
        product_rows = [Product(name=n, price=p, stock=s) for n, p, s in products]
        session.add_all(table_rows + product_rows)
        await session.commit()
        return [t.id for t in table_rows], [p.id for p in product_rows]


async def stock_of(database, product_id: int) -> int:
    async with database.session() as session:
        product = await session.get(Product, product_id)
        return product.stock
